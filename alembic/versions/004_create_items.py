"""004: create items and user_items tables

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE items (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            name            VARCHAR(128)    NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_items_name UNIQUE (name)
        );
    """)
    op.execute("""
        CREATE TABLE user_items (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         UUID            NOT NULL REFERENCES users (id),
            item_id         UUID            NOT NULL REFERENCES items (id),
            quantity        INT             NOT NULL DEFAULT 0,
            bought_per      NUMERIC(18, 2)  NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_items_lot            UNIQUE (user_id, item_id, bought_per),
            CONSTRAINT ck_user_items_quantity_gte_0 CHECK (quantity >= 0),
            CONSTRAINT ck_user_items_bought_per     CHECK (bought_per >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_user_items_updated_at
            BEFORE UPDATE ON user_items
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_items CASCADE;")
    op.execute("DROP TABLE IF EXISTS items CASCADE;")
