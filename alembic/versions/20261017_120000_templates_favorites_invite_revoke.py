"""Templates, featured wiki pages and invite revocation

Revision ID: 20261017_120000
Revises: 20261017_000000
Create Date: 2026-10-17 12:00:00.000000

- Task templates with their items, and project templates
- wiki_pages.is_featured for workspace favorites
- workspace_invites.revoked_at

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ENUM

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261017_120000"
down_revision: Union[str, None] = "20261017_000000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# created by the initial revision
priority = ENUM("LOW", "MEDIUM", "HIGH", "URGENT", name="priority", create_type=False)
task_status = ENUM("TODO", "IN_PROGRESS", "IN_REVIEW", "DONE", "BLOCKED", name="taskstatus", create_type=False)


def upgrade() -> None:
    """Add template tables and the favorite and revoke columns."""
    op.add_column("workspace_invites", sa.Column("revoked_at", sa.DateTime(), nullable=True))
    op.add_column(
        "wiki_pages", sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false())
    )
    op.create_index("ix_wiki_pages_is_featured", "wiki_pages", ["is_featured"])

    op.create_table(
        "task_templates",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("extra", sa.JSON(), nullable=False),
        sa.Column("created_by_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_task_templates_workspace_id", "task_templates", ["workspace_id"])
    op.create_index("ix_task_templates_category", "task_templates", ["category"])
    op.create_index("ix_task_templates_created_at", "task_templates", ["created_at"])

    op.create_table(
        "task_template_items",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("template_id", sa.String(), sa.ForeignKey("task_templates.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("status", task_status, nullable=False),
        sa.Column("priority", priority, nullable=False),
        sa.Column("estimated_duration", sa.Integer(), nullable=True),
        sa.Column("assignee_role", sa.String(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("dependencies", sa.JSON(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_task_template_items_template_id", "task_template_items", ["template_id"])

    op.create_table(
        "project_templates",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("workspace_id", sa.String(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("template_data", sa.JSON(), nullable=False),
        sa.Column("created_by_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_project_templates_workspace_id", "project_templates", ["workspace_id"])
    op.create_index("ix_project_templates_category", "project_templates", ["category"])
    op.create_index("ix_project_templates_created_at", "project_templates", ["created_at"])


def downgrade() -> None:
    """Drop template tables and the favorite and revoke columns."""
    op.drop_table("project_templates")
    op.drop_table("task_template_items")
    op.drop_table("task_templates")
    op.drop_index("ix_wiki_pages_is_featured", table_name="wiki_pages")
    op.drop_column("wiki_pages", "is_featured")
    op.drop_column("workspace_invites", "revoked_at")
