"""Workflow schema: users, templates, documents, roles, status log, signing links, notifications."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

DOCUMENT_STATUS = sa.Enum(
    "DRAFT", "EDITING", "READY_FOR_REVIEW", "REVIEWING", "SIGNING", "COMPLETED", "REJECTED", name="documentstatus"
)
TASK_ROLE = sa.Enum("CREATOR", "EDITOR", "REVIEWER", "SIGNER", name="taskrole")
NOTIFICATION_TYPE = sa.Enum("DOCUMENT_ASSIGNED", "DOCUMENT_REJECTED", name="notificationtype")


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=128), nullable=False),
        sa.Column("profile", sa.String(length=32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("can_access_folders", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "folders",
        *_base_columns(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("parent_id", sa.Uuid(), sa.ForeignKey("folders.id"), nullable=True),
        sa.Column("created_by_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
    )
    op.create_index("ix_folders_parent_id", "folders", ["parent_id"])

    op.create_table(
        "templates",
        *_base_columns(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("created_by_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("default_folder_id", sa.Uuid(), sa.ForeignKey("folders.id"), nullable=True),
        sa.Column("coordinate_fields", sa.JSON(), nullable=True),
    )
    op.create_index("ix_templates_created_by_id", "templates", ["created_by_id"])

    op.create_table(
        "documents",
        *_base_columns(),
        sa.Column("template_id", sa.Uuid(), sa.ForeignKey("templates.id"), nullable=False),
        sa.Column("folder_id", sa.Uuid(), sa.ForeignKey("folders.id"), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("status", DOCUMENT_STATUS, nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_rejected", sa.Boolean(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index("ix_documents_template_id", "documents", ["template_id"])
    op.create_index("ix_documents_folder_id", "documents", ["folder_id"])
    op.create_index("ix_documents_status", "documents", ["status"])
    op.create_index("ix_documents_deadline", "documents", ["deadline"])

    op.create_table(
        "document_roles",
        *_base_columns(),
        sa.Column("document_id", sa.Uuid(), sa.ForeignKey("documents.id"), nullable=False),
        sa.Column("task_role", TASK_ROLE, nullable=False),
        sa.Column("assigned_user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("pending_email", sa.String(length=320), nullable=True),
        sa.Column("pending_name", sa.String(length=128), nullable=True),
        sa.Column("last_viewed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_document_roles_document_id", "document_roles", ["document_id"])
    op.create_index("ix_document_roles_task_role", "document_roles", ["task_role"])
    op.create_index("ix_document_roles_assigned_user_id", "document_roles", ["assigned_user_id"])
    op.create_index("ix_document_roles_pending_email", "document_roles", ["pending_email"])

    op.create_table(
        "document_status_logs",
        *_base_columns(),
        sa.Column("document_id", sa.Uuid(), sa.ForeignKey("documents.id"), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("status", DOCUMENT_STATUS, nullable=False),
        sa.Column("changed_by_email", sa.String(length=320), nullable=True),
        sa.Column("changed_by_name", sa.String(length=128), nullable=True),
        sa.Column("comment", sa.String(), nullable=True),
        sa.Column("reject_log", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_document_status_logs_document_id", "document_status_logs", ["document_id"])
    op.create_index("ix_document_status_logs_sequence", "document_status_logs", ["sequence"])

    op.create_table(
        "signing_tokens",
        *_base_columns(),
        sa.Column("document_id", sa.Uuid(), sa.ForeignKey("documents.id"), nullable=False),
        sa.Column("signer_email", sa.String(length=320), nullable=False),
        sa.Column("signer_name", sa.String(length=128), nullable=True),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_signing_tokens_document_id", "signing_tokens", ["document_id"])
    op.create_index("ix_signing_tokens_signer_email", "signing_tokens", ["signer_email"])
    op.create_index("ix_signing_tokens_token_hash", "signing_tokens", ["token_hash"], unique=True)

    op.create_table(
        "user_notifications",
        *_base_columns(),
        sa.Column("recipient_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("document_id", sa.Uuid(), sa.ForeignKey("documents.id"), nullable=True),
        sa.Column("notification_type", NOTIFICATION_TYPE, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.String(), nullable=False),
        sa.Column("action_url", sa.String(length=512), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_user_notifications_recipient_id", "user_notifications", ["recipient_id"])
    op.create_index("ix_user_notifications_document_id", "user_notifications", ["document_id"])
    op.create_index("ix_user_notifications_notification_type", "user_notifications", ["notification_type"])
    op.create_index("ix_user_notifications_read_at", "user_notifications", ["read_at"])


def downgrade() -> None:
    op.drop_table("user_notifications")
    op.drop_table("signing_tokens")
    op.drop_table("document_status_logs")
    op.drop_table("document_roles")
    op.drop_table("documents")
    op.drop_table("templates")
    op.drop_table("folders")
    op.drop_table("users")
    bind = op.get_bind()
    for enum in (NOTIFICATION_TYPE, TASK_ROLE, DOCUMENT_STATUS):
        enum.drop(bind, checkfirst=True)
