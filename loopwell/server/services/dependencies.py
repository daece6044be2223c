"""
Task dependency rules.

``A.depends_on`` lists the tasks A waits for and ``A.blocks`` the tasks
waiting for A. Both sides are kept in sync. Links stay inside one project and
the "waits for" graph has no cycles.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set

from loopwell.core.database.entities.tasks import Task
from loopwell.core.errors import DomainValidationError
from loopwell.core.models.io.tasks import DependencyAction


def _unique(ids: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(ids))


def merge_links(current: List[str], requested: Optional[List[str]], action: DependencyAction) -> List[str]:
    """The link list after applying ``action``; ``None`` leaves it unchanged."""
    if requested is None:
        return list(current)
    if action == DependencyAction.SET:
        return _unique(requested)
    if action == DependencyAction.ADD:
        return _unique([*current, *requested])
    return [task_id for task_id in current if task_id not in requested]


def has_cycle(waits_for: Dict[str, Set[str]], start: str) -> bool:
    """True when ``start`` can reach itself through ``waits_for`` edges."""
    stack = list(waits_for.get(start, ()))
    seen: Set[str] = set()
    while stack:
        current = stack.pop()
        if current == start:
            return True
        if current in seen:
            continue
        seen.add(current)
        stack.extend(waits_for.get(current, ()))
    return False


def check_dependencies(task_id: str, depends_on: List[str], blocks: List[str], project_tasks: List[Task]) -> None:
    """Validate the new links of ``task_id`` against the rest of its project.

    Raises:
        DomainValidationError: an id is unknown or in another project, or the links form a cycle.
    """
    known = {task.id for task in project_tasks if task.id != task_id}
    if task_id in depends_on or task_id in blocks:
        raise DomainValidationError("Circular dependency detected")
    if not set(depends_on) <= known:
        raise DomainValidationError("Some dependency tasks not found or not in the same project")
    if not set(blocks) <= known:
        raise DomainValidationError("Some blocked tasks not found or not in the same project")

    waits_for: Dict[str, Set[str]] = {task_id: set(depends_on)}
    for task in project_tasks:
        if task.id == task_id:
            continue
        # links touching task_id are rebuilt from the new lists
        edges = waits_for.setdefault(task.id, set())
        edges.update(dep for dep in task.depends_on or [] if dep != task_id)
        for blocked in task.blocks or []:
            if blocked != task_id:
                waits_for.setdefault(blocked, set()).add(task.id)
    for blocked in blocks:
        waits_for.setdefault(blocked, set()).add(task_id)

    if has_cycle(waits_for, task_id):
        raise DomainValidationError("Circular dependency detected")


def assert_acyclic(waits_for: Dict[str, Set[str]]) -> None:
    """Reject a blueprint graph where any node waits for itself.

    Raises:
        DomainValidationError: the graph has a cycle.
    """
    if any(has_cycle(waits_for, node) for node in waits_for):
        raise DomainValidationError("Circular dependency detected")
