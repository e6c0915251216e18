"""org chart initial schema

Revision ID: 202610010001
Revises:
Create Date: 2026-10-01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202610010001"
down_revision = None
branch_labels = None
depends_on = None

node_type_enum = sa.Enum("DIVISION", "PERSON", name="orgnodetype")
account_role_enum = sa.Enum("USER", "ADMIN", name="accountrole")


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("correlation_id", sa.String(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("event_id"),
    )
    op.create_index("ix_events_event_type", "events", ["event_type"])
    op.create_index("ix_events_ts", "events", ["ts"])
    op.create_index("ix_events_actor_id", "events", ["actor_id"])
    op.create_index("ix_events_correlation_id", "events", ["correlation_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("node_id", sa.String(), nullable=True),
        sa.Column("outcome", sa.String(), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("detail", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_node_id", "audit_logs", ["node_id"])
    op.create_index("ix_audit_logs_ts", "audit_logs", ["ts"])

    op.create_table(
        "accounts",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", account_role_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_accounts_username", "accounts", ["username"], unique=True)
    op.create_index("ix_accounts_email", "accounts", ["email"], unique=True)
    op.create_index("ix_accounts_role", "accounts", ["role"])
    op.create_index("ix_accounts_created_at", "accounts", ["created_at"])

    op.create_table(
        "org_nodes",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("parent_id", sa.String(), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("role_title", sa.String(), nullable=False),
        sa.Column("department", sa.String(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("photo_url", sa.String(), nullable=True),
        sa.Column("node_type", node_type_enum, nullable=False),
        sa.Column("created_by_id", sa.String(), nullable=False),
        sa.Column("linked_user_id", sa.String(), nullable=True),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_org_nodes_parent_id", "org_nodes", ["parent_id"])
    op.create_index("ix_org_nodes_name", "org_nodes", ["name"])
    op.create_index("ix_org_nodes_node_type", "org_nodes", ["node_type"])
    op.create_index("ix_org_nodes_created_by_id", "org_nodes", ["created_by_id"])
    op.create_index("ix_org_nodes_linked_user_id", "org_nodes", ["linked_user_id"])
    op.create_index("ix_org_nodes_created_at", "org_nodes", ["created_at"])
    op.create_index(
        "uq_org_nodes_person_user",
        "org_nodes",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("node_type = 'PERSON'"),
        sqlite_where=sa.text("node_type = 'PERSON'"),
    )


def downgrade() -> None:
    op.drop_index("uq_org_nodes_person_user", table_name="org_nodes")
    op.drop_index("ix_org_nodes_created_at", table_name="org_nodes")
    op.drop_index("ix_org_nodes_linked_user_id", table_name="org_nodes")
    op.drop_index("ix_org_nodes_created_by_id", table_name="org_nodes")
    op.drop_index("ix_org_nodes_node_type", table_name="org_nodes")
    op.drop_index("ix_org_nodes_name", table_name="org_nodes")
    op.drop_index("ix_org_nodes_parent_id", table_name="org_nodes")
    op.drop_table("org_nodes")

    op.drop_index("ix_accounts_created_at", table_name="accounts")
    op.drop_index("ix_accounts_role", table_name="accounts")
    op.drop_index("ix_accounts_email", table_name="accounts")
    op.drop_index("ix_accounts_username", table_name="accounts")
    op.drop_table("accounts")

    op.drop_index("ix_audit_logs_ts", table_name="audit_logs")
    op.drop_index("ix_audit_logs_node_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_actor_id", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_events_correlation_id", table_name="events")
    op.drop_index("ix_events_actor_id", table_name="events")
    op.drop_index("ix_events_ts", table_name="events")
    op.drop_index("ix_events_event_type", table_name="events")
    op.drop_table("events")

    node_type_enum.drop(op.get_bind(), checkfirst=True)
    account_role_enum.drop(op.get_bind(), checkfirst=True)
