"""TransactionRepository — raw SQL persistence implementation.

transactions is an audit trail: rows are inserted once and only their status
columns change afterwards, guarded by `status = 'PENDING'` so a terminal status
is never overwritten.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.enums import FailureReason, TransactionStatus
from src.tm_common.errors import InvalidStatusTransitionError, TransactionNotFoundError
from src.tm_trade.domain.models import Transaction, TransactionRecord
from src.tm_trade.domain.repository import ListTransactionsQuery

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, from_wallet_id, from_user_id, to_wallet_id, to_user_id,
    announcement_id, item_id, value_per_item, quantity_items_asked, amount,
    status, failure_reason, created_at, updated_at
"""

_INSERT_TRANSACTION_SQL = text(f"""
    INSERT INTO transactions (
        from_wallet_id, from_user_id, to_wallet_id, to_user_id,
        announcement_id, item_id, value_per_item, quantity_items_asked, amount,
        status, failure_reason)
    VALUES (
        CAST(:from_wallet_id AS UUID), CAST(:from_user_id AS UUID),
        CAST(:to_wallet_id AS UUID), CAST(:to_user_id AS UUID),
        CAST(:announcement_id AS UUID), CAST(:item_id AS UUID),
        :value_per_item, :quantity_items_asked, :amount,
        :status, :failure_reason)
    RETURNING {_COLUMNS}
""")

_UPDATE_STATUS_SQL = text(f"""
    UPDATE transactions
    SET status = :status,
        failure_reason = :failure_reason,
        updated_at = NOW()
    WHERE id = :id AND status = 'PENDING'
    RETURNING {_COLUMNS}
""")

_GET_TRANSACTION_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM transactions
    WHERE id = :id
""")

_LIST_TRANSACTIONS_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM transactions
    WHERE (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:to_wallet_id AS TEXT) IS NULL
           OR to_wallet_id = CAST(:to_wallet_id AS UUID))
      AND (CAST(:party_user_id AS TEXT) IS NULL
           OR from_user_id = CAST(:party_user_id AS UUID)
           OR to_user_id = CAST(:party_user_id AS UUID))
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_record(row: Any) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        from_wallet_id=str(row.from_wallet_id),
        from_user_id=str(row.from_user_id),
        to_wallet_id=str(row.to_wallet_id),
        to_user_id=str(row.to_user_id),
        announcement_id=str(row.announcement_id),
        item_id=str(row.item_id),
        value_per_item=Decimal(row.value_per_item),
        quantity_items_asked=row.quantity_items_asked,
        amount=Decimal(row.amount),
        status=TransactionStatus(row.status),
        failure_reason=FailureReason(row.failure_reason) if row.failure_reason else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TransactionRepository:
    """Concrete implementation of TransactionRepositoryProtocol using raw SQL."""

    async def create(self, db: AsyncSession, tx: Transaction) -> TransactionRecord:
        """Insert tx and copy the generated id/timestamps back onto it."""
        result = await db.execute(
            _INSERT_TRANSACTION_SQL,
            {
                "from_wallet_id": tx.from_wallet.id,
                "from_user_id": tx.from_wallet.user_id,
                "to_wallet_id": tx.to_wallet.id,
                "to_user_id": tx.to_wallet.user_id,
                "announcement_id": tx.announcement.id,
                "item_id": tx.announcement.item_id,
                "value_per_item": tx.announcement.value_per_item,
                "quantity_items_asked": tx.quantity_items_asked,
                "amount": tx.amount,
                "status": tx.status.value,
                "failure_reason": tx.failure_reason.value if tx.failure_reason else None,
            },
        )
        record = _row_to_record(result.fetchone())
        tx.id = record.id
        tx.created_at = record.created_at
        tx.updated_at = record.updated_at
        return record

    async def get_by_id(
        self, db: AsyncSession, transaction_id: int
    ) -> TransactionRecord | None:
        result = await db.execute(_GET_TRANSACTION_SQL, {"id": transaction_id})
        row = result.fetchone()
        return _row_to_record(row) if row else None

    async def update_status(self, db: AsyncSession, tx: Transaction) -> TransactionRecord:
        """Persist a PENDING -> terminal move.

        Raises:
            TransactionNotFoundError: no row with tx.id.
            InvalidStatusTransitionError: the stored row already left PENDING
                (another request resolved it first).
        """
        if tx.id is None:
            raise ValueError("Transaction must be persisted before its status is updated")
        result = await db.execute(
            _UPDATE_STATUS_SQL,
            {
                "id": tx.id,
                "status": tx.status.value,
                "failure_reason": tx.failure_reason.value if tx.failure_reason else None,
            },
        )
        row = result.fetchone()
        if row is None:
            current = await self.get_by_id(db, tx.id)
            if current is None:
                raise TransactionNotFoundError(tx.id)
            raise InvalidStatusTransitionError(current.status.value, tx.status.value)
        record = _row_to_record(row)
        tx.updated_at = record.updated_at
        return record

    async def list(
        self, db: AsyncSession, query: ListTransactionsQuery
    ) -> list[TransactionRecord]:
        result = await db.execute(
            _LIST_TRANSACTIONS_SQL,
            {
                "status": query.status.value if query.status else None,
                "to_wallet_id": query.to_wallet_id,
                "party_user_id": query.party_user_id,
                "cursor_id": query.cursor_id,
                "limit": query.limit,
            },
        )
        return [_row_to_record(row) for row in result.fetchall()]
