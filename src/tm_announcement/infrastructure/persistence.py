"""AnnouncementRepository — raw SQL persistence implementation.

reserve_quantity is the per-announcement serialization point: concurrent
trades against the same offer race on one guarded UPDATE, never on a
read-then-write.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_announcement.domain.models import Announcement, Item
from src.tm_announcement.domain.repository import FindAnnouncementQuery
from src.tm_common.errors import WalletNotFoundError
from src.tm_user.domain.models import Wallet

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_FIND_ANNOUNCEMENT_SQL = text("""
    SELECT a.id, a.user_id, a.value_per_item, a.quantity_available, a.created_at,
           i.id AS item_id, i.name AS item_name,
           w.id AS wallet_id, w.balance AS wallet_balance
    FROM announcements a
    JOIN items i ON i.id = a.item_id
    LEFT JOIN wallets w ON w.user_id = a.user_id
    WHERE (CAST(:id AS TEXT) IS NULL OR a.id = CAST(:id AS UUID))
      AND (CAST(:owner_id AS TEXT) IS NULL OR a.user_id = CAST(:owner_id AS UUID))
      AND (CAST(:item_id AS TEXT) IS NULL OR a.item_id = CAST(:item_id AS UUID))
    ORDER BY a.created_at DESC
    LIMIT 1
""")

_RESERVE_QUANTITY_SQL = text("""
    UPDATE announcements
    SET quantity_available = quantity_available - :quantity,
        updated_at = NOW()
    WHERE id = CAST(:announcement_id AS UUID)
      AND quantity_available >= :quantity
    RETURNING quantity_available
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_announcement(row: Any) -> Announcement:
    owner_id = str(row.user_id)
    if row.wallet_id is None:
        raise WalletNotFoundError(f"user {owner_id}")
    return Announcement(
        id=str(row.id),
        owner_id=owner_id,
        owner_wallet=Wallet(
            id=str(row.wallet_id),
            user_id=owner_id,
            balance=Decimal(row.wallet_balance),
        ),
        item=Item(id=str(row.item_id), name=row.item_name),
        value_per_item=Decimal(row.value_per_item),
        quantity_available=row.quantity_available,
        created_at=row.created_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AnnouncementRepository:
    """Concrete implementation of AnnouncementRepositoryProtocol using raw SQL."""

    async def find_by(
        self, db: AsyncSession, query: FindAnnouncementQuery
    ) -> Announcement | None:
        result = await db.execute(
            _FIND_ANNOUNCEMENT_SQL,
            {"id": query.id, "owner_id": query.owner_id, "item_id": query.item_id},
        )
        row = result.fetchone()
        return _row_to_announcement(row) if row else None

    async def reserve_quantity(
        self, db: AsyncSession, announcement_id: str, quantity: int
    ) -> int | None:
        """Take `quantity` off the offer. Returns what is left, or None if short."""
        result = await db.execute(
            _RESERVE_QUANTITY_SQL,
            {"announcement_id": announcement_id, "quantity": quantity},
        )
        row = result.fetchone()
        return row.quantity_available if row else None
