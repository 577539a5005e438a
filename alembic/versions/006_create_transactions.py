"""006: create transactions table

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transactions (
            id                      BIGSERIAL       PRIMARY KEY,
            from_wallet_id          UUID            NOT NULL REFERENCES wallets (id),
            from_user_id            UUID            NOT NULL REFERENCES users (id),
            to_wallet_id            UUID            NOT NULL REFERENCES wallets (id),
            to_user_id              UUID            NOT NULL REFERENCES users (id),
            announcement_id         UUID            NOT NULL REFERENCES announcements (id),
            item_id                 UUID            NOT NULL REFERENCES items (id),
            value_per_item          NUMERIC(18, 2)  NOT NULL,
            quantity_items_asked    INT             NOT NULL,
            amount                  NUMERIC(18, 2)  NOT NULL,
            status                  VARCHAR(16)     NOT NULL DEFAULT 'PENDING',
            failure_reason          VARCHAR(32)     DEFAULT NULL,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_transactions_quantity_gt_0  CHECK (quantity_items_asked > 0),
            CONSTRAINT ck_transactions_amount         CHECK (amount = quantity_items_asked * value_per_item),
            CONSTRAINT ck_transactions_diff_users     CHECK (from_user_id != to_user_id),
            CONSTRAINT ck_transactions_status         CHECK (
                status IN ('PENDING', 'ACCEPTED', 'REJECTED', 'FAILED')
            ),
            CONSTRAINT ck_transactions_failure_reason CHECK (
                (status = 'FAILED') = (failure_reason IS NOT NULL)
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_transactions_to_wallet_status ON transactions (to_wallet_id, status);"
    )
    op.execute("CREATE INDEX idx_transactions_from_user ON transactions (from_user_id, id DESC);")
    op.execute("CREATE INDEX idx_transactions_to_user ON transactions (to_user_id, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_transactions_updated_at
            BEFORE UPDATE ON transactions
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("""
        CREATE TRIGGER trg_transactions_guard
            BEFORE UPDATE OR DELETE ON transactions
            FOR EACH ROW EXECUTE FUNCTION fn_transactions_guard();
    """)
    op.execute("COMMENT ON TABLE transactions IS 'Trade audit trail; rows are never deleted';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
