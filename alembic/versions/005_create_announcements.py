"""005: create announcements table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE announcements (
            id                  UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id             UUID            NOT NULL REFERENCES users (id),
            item_id             UUID            NOT NULL REFERENCES items (id),
            value_per_item      NUMERIC(18, 2)  NOT NULL,
            quantity_available  INT             NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_announcements_value_gt_0    CHECK (value_per_item > 0),
            CONSTRAINT ck_announcements_quantity_gte_0 CHECK (quantity_available >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_announcements_user ON announcements (user_id);")
    op.execute("CREATE INDEX idx_announcements_item ON announcements (item_id);")
    op.execute("""
        CREATE TRIGGER trg_announcements_updated_at
            BEFORE UPDATE ON announcements
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS announcements CASCADE;")
