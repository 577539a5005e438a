"""002: create users table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            name            VARCHAR(64)     NOT NULL,
            role            VARCHAR(16)     NOT NULL DEFAULT 'USER',
            status          VARCHAR(16)     NOT NULL DEFAULT 'OFFLINE',
            socket_id       VARCHAR(128)    DEFAULT NULL,
            avatar_url      VARCHAR(500)    DEFAULT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_name        UNIQUE (name),
            CONSTRAINT ck_users_role        CHECK (role IN ('USER', 'ADMIN')),
            CONSTRAINT ck_users_status      CHECK (status IN ('ONLINE', 'OFFLINE'))
        );
    """)
    op.execute("CREATE INDEX idx_users_status ON users (status);")
    op.execute("CREATE INDEX idx_users_socket_id ON users (socket_id);")
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
