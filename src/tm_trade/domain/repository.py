"""TransactionRepository Protocol — interface contract for persistence layer."""

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.enums import TransactionStatus
from src.tm_trade.domain.models import Transaction, TransactionRecord


@dataclass(frozen=True)
class ListTransactionsQuery:
    """Filters for listing; None means "no filter". Results are newest first."""

    status: TransactionStatus | None = None
    to_wallet_id: str | None = None
    party_user_id: str | None = None  # either side of the trade
    cursor_id: int | None = None
    limit: int | None = None


class TransactionRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, tx: Transaction) -> TransactionRecord: ...

    async def get_by_id(
        self, db: AsyncSession, transaction_id: int
    ) -> TransactionRecord | None: ...

    async def update_status(self, db: AsyncSession, tx: Transaction) -> TransactionRecord: ...

    async def list(
        self, db: AsyncSession, query: ListTransactionsQuery
    ) -> list[TransactionRecord]: ...
