"""001: create common trigger functions

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_touch_updated_at()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    # transactions is an audit trail: only a PENDING row may change, only its
    # status columns may change, and rows are never deleted
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_transactions_guard()
        RETURNS TRIGGER AS $$
        BEGIN
            IF TG_OP = 'DELETE' THEN
                RAISE EXCEPTION 'transactions rows cannot be deleted (id=%)', OLD.id;
            END IF;
            IF OLD.status <> 'PENDING' THEN
                RAISE EXCEPTION 'transaction % is already %', OLD.id, OLD.status;
            END IF;
            IF (NEW.from_wallet_id, NEW.to_wallet_id, NEW.announcement_id,
                NEW.value_per_item, NEW.quantity_items_asked, NEW.amount)
               IS DISTINCT FROM
               (OLD.from_wallet_id, OLD.to_wallet_id, OLD.announcement_id,
                OLD.value_per_item, OLD.quantity_items_asked, OLD.amount) THEN
                RAISE EXCEPTION 'transaction % terms are immutable', OLD.id;
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS fn_transactions_guard();")
    op.execute("DROP FUNCTION IF EXISTS fn_touch_updated_at();")
