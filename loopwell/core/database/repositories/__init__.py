"""
Repository layer.

One module per business domain. Repositories receive an ``AsyncSession`` and
commit their own writes; multi-row operations are single methods that
commit once.
"""

from .base import AsyncBaseRepository, QueryBuilder, SQLModelRepository, next_available_slug
from .chat_sessions import ChatSessionRepository
from .migrations import MigrationRecordRepository
from .org import OrgDepartmentRepository, OrgPositionRepository, OrgTeamRepository
from .projects import EpicRepository, MilestoneRepository, ProjectRepository
from .tasks import TaskRepository
from .templates import ProjectTemplateRepository, TaskTemplateRepository
from .wiki import WikiRepository, relevance_score
from .workspaces import InviteRepository, UserRepository, WorkspaceRepository

__all__ = [
    "AsyncBaseRepository",
    "ChatSessionRepository",
    "EpicRepository",
    "InviteRepository",
    "MigrationRecordRepository",
    "MilestoneRepository",
    "OrgDepartmentRepository",
    "OrgPositionRepository",
    "OrgTeamRepository",
    "ProjectRepository",
    "ProjectTemplateRepository",
    "QueryBuilder",
    "SQLModelRepository",
    "TaskRepository",
    "TaskTemplateRepository",
    "UserRepository",
    "WikiRepository",
    "WorkspaceRepository",
    "next_available_slug",
    "relevance_score",
]
