"""Initial schema: users, groups and permission tables.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            channel_id TEXT PRIMARY KEY,
            display_name TEXT NOT NULL,
            hours_seconds BIGINT NOT NULL DEFAULT 0,
            hours_nanos INTEGER NOT NULL DEFAULT 0,
            money BIGINT NOT NULL DEFAULT 0,
            first_seen_at TIMESTAMP NOT NULL,
            last_seen_at TIMESTAMP NOT NULL,
            CONSTRAINT ck_users_channel_id_not_empty CHECK (channel_id <> ''),
            CONSTRAINT ck_users_hours_seconds_non_negative CHECK (hours_seconds >= 0),
            CONSTRAINT ck_users_hours_nanos_range CHECK (hours_nanos >= 0 AND hours_nanos < 1000000000),
            CONSTRAINT ck_users_money_non_negative CHECK (money >= 0),
            CONSTRAINT ck_users_seen_order CHECK (last_seen_at >= first_seen_at)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_users_hours_seconds ON users(hours_seconds)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_users_money ON users(money)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_users_display_name ON users(display_name)")

    # --- Groups ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS groups (
            id SERIAL PRIMARY KEY,
            name VARCHAR(128) NOT NULL
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS group_users (
            group_id INTEGER NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
            channel_id TEXT NOT NULL REFERENCES users(channel_id) ON DELETE CASCADE,
            PRIMARY KEY (group_id, channel_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_group_users_channel ON group_users(channel_id)")

    # --- Permissions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS group_permissions (
            group_id INTEGER NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
            permission VARCHAR(128) NOT NULL,
            PRIMARY KEY (group_id, permission)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_permissions (
            channel_id TEXT NOT NULL REFERENCES users(channel_id) ON DELETE CASCADE,
            permission VARCHAR(128) NOT NULL,
            PRIMARY KEY (channel_id, permission)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_permissions")
    op.execute("DROP TABLE IF EXISTS group_permissions")
    op.execute("DROP TABLE IF EXISTS group_users")
    op.execute("DROP TABLE IF EXISTS groups")
    op.execute("DROP TABLE IF EXISTS users")
