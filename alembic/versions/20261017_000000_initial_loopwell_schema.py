"""Initial schema for Loopwell

Revision ID: 20261017_000000
Revises: None
Create Date: 2026-10-17 00:00:00.000000

Creates every table of the workspace server:
- Users, workspaces, memberships and invites
- Projects with members, watchers, assignees, epics and milestones
- Tasks with subtasks, comments and custom fields
- Wiki pages with versions and attachments
- Org chart positions, departments and teams
- Assistant chat sessions and messages
- Content migration records

Revision format: YYYYMMDD_HHMMSS_description

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ENUM

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261017_000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# enum columns store member names, as SQLModel maps them; types are created once in upgrade()
workspace_role = ENUM("VIEWER", "MEMBER", "ADMIN", "OWNER", name="workspacerole", create_type=False)
project_status = ENUM("ACTIVE", "ON_HOLD", "COMPLETED", "CANCELLED", name="projectstatus", create_type=False)
priority = ENUM("LOW", "MEDIUM", "HIGH", "URGENT", name="priority", create_type=False)
project_visibility = ENUM("PUBLIC", "TARGETED", name="projectvisibility", create_type=False)
task_status = ENUM("TODO", "IN_PROGRESS", "IN_REVIEW", "DONE", "BLOCKED", name="taskstatus", create_type=False)
custom_field_type = ENUM("TEXT", "NUMBER", "SELECT", "DATE", "BOOLEAN", name="customfieldtype", create_type=False)
message_type = ENUM("USER", "AI", name="messagetype", create_type=False)
migration_platform = ENUM("CLICKUP", "SLITE", name="migrationplatform", create_type=False)
migration_status = ENUM("RUNNING", "COMPLETED", "PARTIAL", "FAILED", name="migrationstatus", create_type=False)

ENUMS = [
    workspace_role,
    project_status,
    priority,
    project_visibility,
    task_status,
    custom_field_type,
    message_type,
    migration_platform,
    migration_status,
]


def _id() -> sa.Column:
    return sa.Column("id", sa.String(), nullable=False)


def _timestamps(updated: bool = True) -> list:
    columns = [sa.Column("created_at", sa.DateTime(), nullable=False)]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(), nullable=False))
    return columns


def upgrade() -> None:
    """Create all tables."""
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    # Identity and workspaces
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("image", sa.String(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "workspaces",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("owner_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workspaces_slug", "workspaces", ["slug"], unique=True)
    op.create_index("ix_workspaces_owner_id", "workspaces", ["owner_id"])

    op.create_table(
        "workspace_members",
        _id(),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role", workspace_role, nullable=False),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
    )
    op.create_index("ix_workspace_members_workspace_id", "workspace_members", ["workspace_id"])
    op.create_index("ix_workspace_members_user_id", "workspace_members", ["user_id"])
    op.create_index("ix_workspace_members_joined_at", "workspace_members", ["joined_at"])

    op.create_table(
        "workspace_invites",
        _id(),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("role", workspace_role, nullable=False),
        sa.Column("token", sa.String(), nullable=False),
        sa.Column("invited_by_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("accepted_at", sa.DateTime(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workspace_invites_workspace_id", "workspace_invites", ["workspace_id"])
    op.create_index("ix_workspace_invites_email", "workspace_invites", ["email"])
    op.create_index("ix_workspace_invites_token", "workspace_invites", ["token"], unique=True)

    # Projects
    op.create_table(
        "projects",
        _id(),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("status", project_status, nullable=False),
        sa.Column("priority", priority, nullable=False),
        sa.Column("visibility", project_visibility, nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=True),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("color", sa.String(), nullable=True),
        sa.Column("department", sa.String(), nullable=True),
        sa.Column("team", sa.String(), nullable=True),
        sa.Column("owner_id", sa.String(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_by_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("daily_summary_enabled", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_workspace_id", "projects", ["workspace_id"])
    op.create_index("ix_projects_status", "projects", ["status"])
    op.create_index("ix_projects_updated_at", "projects", ["updated_at"])

    for table, constraint, extra in (
        ("project_members", "uq_project_member", [sa.Column("role", workspace_role, nullable=False)]),
        ("project_watchers", "uq_project_watcher", []),
        ("project_assignees", "uq_project_assignee", [sa.Column("role", sa.String(), nullable=True)]),
    ):
        columns = [
            _id(),
            sa.Column("project_id", sa.String(), sa.ForeignKey("projects.id"), nullable=False),
            sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
            *extra,
        ]
        if table == "project_members":
            columns.append(sa.Column("joined_at", sa.DateTime(), nullable=False))
        op.create_table(
            table,
            *columns,
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "user_id", name=constraint),
        )
        op.create_index(f"ix_{table}_project_id", table, ["project_id"])
    op.create_index("ix_project_members_user_id", "project_members", ["user_id"])

    op.create_table(
        "epics",
        _id(),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("project_id", sa.String(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("color", sa.String(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_epics_workspace_id", "epics", ["workspace_id"])
    op.create_index("ix_epics_project_id", "epics", ["project_id"])

    op.create_table(
        "milestones",
        _id(),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("project_id", sa.String(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("start_date", sa.DateTime(), nullable=True),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_milestones_workspace_id", "milestones", ["workspace_id"])
    op.create_index("ix_milestones_project_id", "milestones", ["project_id"])

    # Tasks
    op.create_table(
        "tasks",
        _id(),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("project_id", sa.String(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("status", task_status, nullable=False),
        sa.Column("priority", priority, nullable=False),
        sa.Column("assignee_id", sa.String(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_by_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("depends_on", sa.JSON(), nullable=True),
        sa.Column("blocks", sa.JSON(), nullable=True),
        sa.Column("epic_id", sa.String(), sa.ForeignKey("epics.id"), nullable=True),
        sa.Column("milestone_id", sa.String(), sa.ForeignKey("milestones.id"), nullable=True),
        sa.Column("points", sa.Integer(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("workspace_id", "project_id", "status", "assignee_id", "epic_id", "milestone_id"):
        op.create_index(f"ix_tasks_{column}", "tasks", [column])

    op.create_table(
        "subtasks",
        _id(),
        sa.Column("task_id", sa.String(), sa.ForeignKey("tasks.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("assignee_id", sa.String(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("is_completed", sa.Boolean(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_subtasks_task_id", "subtasks", ["task_id"])

    op.create_table(
        "task_comments",
        _id(),
        sa.Column("task_id", sa.String(), sa.ForeignKey("tasks.id"), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.String(), nullable=False),
        sa.Column("mentions", sa.JSON(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_task_comments_task_id", "task_comments", ["task_id"])
    op.create_index("ix_task_comments_created_at", "task_comments", ["created_at"])

    op.create_table(
        "custom_field_defs",
        _id(),
        sa.Column("project_id", sa.String(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("key", sa.String(), nullable=False),
        sa.Column("label", sa.String(), nullable=False),
        sa.Column("type", custom_field_type, nullable=False),
        sa.Column("options", sa.JSON(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "key", name="uq_custom_field_key"),
    )
    op.create_index("ix_custom_field_defs_project_id", "custom_field_defs", ["project_id"])

    op.create_table(
        "custom_field_values",
        _id(),
        sa.Column("task_id", sa.String(), sa.ForeignKey("tasks.id"), nullable=False),
        sa.Column("field_id", sa.String(), sa.ForeignKey("custom_field_defs.id"), nullable=False),
        sa.Column("value", sa.JSON(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("task_id", "field_id", name="uq_custom_field_value"),
    )
    op.create_index("ix_custom_field_values_task_id", "custom_field_values", ["task_id"])
    op.create_index("ix_custom_field_values_field_id", "custom_field_values", ["field_id"])

    # Wiki
    op.create_table(
        "wiki_pages",
        _id(),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.String(), nullable=False),
        sa.Column("parent_id", sa.String(), sa.ForeignKey("wiki_pages.id"), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("is_published", sa.Boolean(), nullable=False),
        sa.Column("permission_level", sa.String(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("created_by_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("workspace_id", "slug", name="uq_wiki_page_slug"),
    )
    for column in ("workspace_id", "slug", "is_published", "created_by_id"):
        op.create_index(f"ix_wiki_pages_{column}", "wiki_pages", [column])

    op.create_table(
        "wiki_versions",
        _id(),
        sa.Column("page_id", sa.String(), sa.ForeignKey("wiki_pages.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_by_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("page_id", "version", name="uq_wiki_version"),
    )
    op.create_index("ix_wiki_versions_page_id", "wiki_versions", ["page_id"])

    op.create_table(
        "wiki_attachments",
        _id(),
        sa.Column("page_id", sa.String(), sa.ForeignKey("wiki_pages.id"), nullable=False),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("file_type", sa.String(), nullable=False),
        sa.Column("file_url", sa.String(), nullable=False),
        sa.Column("uploaded_by_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_wiki_attachments_page_id", "wiki_attachments", ["page_id"])

    # Org chart
    op.create_table(
        "org_positions",
        _id(),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("department", sa.String(), nullable=True),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("parent_id", sa.String(), sa.ForeignKey("org_positions.id"), nullable=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("workspace_id", "parent_id", "is_active"):
        op.create_index(f"ix_org_positions_{column}", "org_positions", [column])

    op.create_table(
        "org_departments",
        _id(),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("color", sa.String(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("workspace_id", "name", name="uq_org_department_name"),
    )
    op.create_index("ix_org_departments_workspace_id", "org_departments", ["workspace_id"])

    op.create_table(
        "org_teams",
        _id(),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("department_id", sa.String(), sa.ForeignKey("org_departments.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("color", sa.String(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_org_teams_workspace_id", "org_teams", ["workspace_id"])
    op.create_index("ix_org_teams_department_id", "org_teams", ["department_id"])

    # Assistant
    op.create_table(
        "chat_sessions",
        _id(),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("model", sa.String(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("workspace_id", "user_id", "created_at", "updated_at"):
        op.create_index(f"ix_chat_sessions_{column}", "chat_sessions", [column])

    op.create_table(
        "chat_messages",
        _id(),
        sa.Column("session_id", sa.String(), sa.ForeignKey("chat_sessions.id"), nullable=False),
        sa.Column("type", message_type, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("meta", sa.JSON(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_chat_messages_session_id", "chat_messages", ["session_id"])
    op.create_index("ix_chat_messages_created_at", "chat_messages", ["created_at"])

    # Content migrations
    op.create_table(
        "migration_records",
        _id(),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("platform", migration_platform, nullable=False),
        sa.Column("status", migration_status, nullable=False),
        sa.Column("imported_count", sa.Integer(), nullable=False),
        sa.Column("failed_count", sa.Integer(), nullable=False),
        sa.Column("errors", sa.JSON(), nullable=True),
        sa.Column("started_by_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("finished_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_migration_records_workspace_id", "migration_records", ["workspace_id"])
    op.create_index("ix_migration_records_created_at", "migration_records", ["created_at"])


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        "migration_records",
        "chat_messages",
        "chat_sessions",
        "org_teams",
        "org_departments",
        "org_positions",
        "wiki_attachments",
        "wiki_versions",
        "wiki_pages",
        "custom_field_values",
        "custom_field_defs",
        "task_comments",
        "subtasks",
        "tasks",
        "milestones",
        "epics",
        "project_assignees",
        "project_watchers",
        "project_members",
        "projects",
        "workspace_invites",
        "workspace_members",
        "workspaces",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in ENUMS:
        enum.drop(bind, checkfirst=True)
