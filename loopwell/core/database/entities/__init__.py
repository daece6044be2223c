"""
Database entity models.

This package contains all database entity models organized by business domain.
Importing it registers every table on ``Base.metadata``.

Modules:
- workspaces: users, workspaces, memberships and invites
- projects: projects, project members, epics and milestones
- tasks: tasks, subtasks, comments and custom fields
- wiki: wiki pages, versions and attachments
- org: org positions, departments and teams
- chat_sessions: assistant conversations and messages
- migrations: content import runs
- templates: task and project templates
"""

from . import (
    chat_sessions,
    migrations,
    org,
    projects,
    tasks,
    templates,
    wiki,
    workspaces,
)

__all__ = [
    "chat_sessions",
    "migrations",
    "org",
    "projects",
    "tasks",
    "templates",
    "wiki",
    "workspaces",
]
