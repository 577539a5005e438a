"""Trade use cases — ask, resolve and list transactions.

Each service resolves the caller from the credential through its injected
IdentityResolverProtocol. Validation and lookups run first and can fail
without writing anything. Once settlement starts, the settle-and-record phase
is shielded from cancellation and ends in exactly one commit or rollback.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tm_announcement.domain.repository import (
    AnnouncementRepositoryProtocol,
    FindAnnouncementQuery,
)
from src.tm_announcement.infrastructure.persistence import AnnouncementRepository
from src.tm_common.enums import TransactionStatus
from src.tm_common.errors import (
    AnnouncementNotFoundError,
    InsufficientQuantityError,
    InvalidStatusTransitionError,
    NotTransactionRecipientError,
    SelfTradeError,
    TradeValidationError,
    TransactionNotFoundError,
    UserNotFoundError,
    WalletNotFoundError,
)
from src.tm_gateway.auth.identity import IdentityResolverProtocol, JwtIdentityResolver
from src.tm_trade.application.schemas import (
    AskTradeRequest,
    TransactionListResponse,
    TransactionResponse,
    cursor_decode,
    cursor_encode,
)
from src.tm_trade.domain.models import Transaction, TransactionRecord
from src.tm_trade.domain.repository import ListTransactionsQuery, TransactionRepositoryProtocol
from src.tm_trade.domain.settlement import settle_transaction
from src.tm_trade.infrastructure.persistence import TransactionRepository
from src.tm_user.domain.models import User
from src.tm_user.domain.repository import (
    FindUserQuery,
    UserRepositoryProtocol,
    WalletRepositoryProtocol,
)
from src.tm_user.infrastructure.persistence import UserRepository, WalletRepository

logger = logging.getLogger(__name__)


async def _load_user(users: UserRepositoryProtocol, db: AsyncSession, user_id: str) -> User:
    user = await users.find_by(db, FindUserQuery(id=user_id))
    if user is None:
        raise UserNotFoundError(user_id)
    return user


class AskTradeService:
    """Request a trade against an announcement."""

    def __init__(
        self,
        users: UserRepositoryProtocol | None = None,
        wallets: WalletRepositoryProtocol | None = None,
        announcements: AnnouncementRepositoryProtocol | None = None,
        transactions: TransactionRepositoryProtocol | None = None,
        identity: IdentityResolverProtocol | None = None,
        requires_approval: bool | None = None,
    ) -> None:
        self._users: UserRepositoryProtocol = users or UserRepository()
        self._wallets: WalletRepositoryProtocol = wallets or WalletRepository()
        self._announcements: AnnouncementRepositoryProtocol = (
            announcements or AnnouncementRepository()
        )
        self._transactions: TransactionRepositoryProtocol = (
            transactions or TransactionRepository()
        )
        self._identity: IdentityResolverProtocol = identity or JwtIdentityResolver()
        self._requires_approval = (
            settings.TRADE_REQUIRES_APPROVAL if requires_approval is None else requires_approval
        )

    async def exec(
        self, db: AsyncSession, request: AskTradeRequest, credential: str
    ) -> TransactionResponse:
        # Cheap input check before any I/O
        if request.quantity_items_asked <= 0:
            raise TradeValidationError("Quantity asked must be greater than 0")

        caller = self._identity.resolve(credential)
        requester = await _load_user(self._users, db, caller.user_id)

        announcement = await self._announcements.find_by(
            db, FindAnnouncementQuery(id=str(request.announcement_id))
        )
        if announcement is None:
            raise AnnouncementNotFoundError(str(request.announcement_id))

        if announcement.is_owned_by(requester.id):
            raise SelfTradeError()

        if request.quantity_items_asked > announcement.quantity_available:
            raise InsufficientQuantityError(
                request.quantity_items_asked, announcement.quantity_available
            )

        tx = Transaction.create(requester.wallet, announcement, request.quantity_items_asked)
        record = await asyncio.shield(self._settle_and_record(db, tx))
        return TransactionResponse.from_record(record)

    async def _settle_and_record(self, db: AsyncSession, tx: Transaction) -> TransactionRecord:
        try:
            if not self._requires_approval:
                await settle_transaction(
                    tx, db, self._wallets, self._announcements, self._users
                )
            # Recorded whatever the outcome: FAILED trades are part of the audit trail
            record = await self._transactions.create(db, tx)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Trade %d recorded: status=%s announcement=%s amount=%s",
            record.id,
            record.status.value,
            record.announcement_id,
            record.amount,
        )
        return record


class RespondToTradeService:
    """Announcement owner accepts or rejects a PENDING trade."""

    def __init__(
        self,
        users: UserRepositoryProtocol | None = None,
        wallets: WalletRepositoryProtocol | None = None,
        announcements: AnnouncementRepositoryProtocol | None = None,
        transactions: TransactionRepositoryProtocol | None = None,
        identity: IdentityResolverProtocol | None = None,
    ) -> None:
        self._users: UserRepositoryProtocol = users or UserRepository()
        self._wallets: WalletRepositoryProtocol = wallets or WalletRepository()
        self._announcements: AnnouncementRepositoryProtocol = (
            announcements or AnnouncementRepository()
        )
        self._transactions: TransactionRepositoryProtocol = (
            transactions or TransactionRepository()
        )
        self._identity: IdentityResolverProtocol = identity or JwtIdentityResolver()

    async def accept(
        self, db: AsyncSession, transaction_id: int, credential: str
    ) -> TransactionResponse:
        tx = await self._load_pending(db, transaction_id, credential, TransactionStatus.ACCEPTED)
        record = await asyncio.shield(self._resolve(db, tx, settle=True))
        return TransactionResponse.from_record(record)

    async def reject(
        self, db: AsyncSession, transaction_id: int, credential: str
    ) -> TransactionResponse:
        tx = await self._load_pending(db, transaction_id, credential, TransactionStatus.REJECTED)
        tx.reject()
        record = await self._resolve(db, tx, settle=False)
        return TransactionResponse.from_record(record)

    async def _load_pending(
        self,
        db: AsyncSession,
        transaction_id: int,
        credential: str,
        target: TransactionStatus,
    ) -> Transaction:
        caller = self._identity.resolve(credential)
        record = await self._transactions.get_by_id(db, transaction_id)
        if record is None:
            raise TransactionNotFoundError(transaction_id)
        if record.to_user_id != caller.user_id:
            raise NotTransactionRecipientError(transaction_id)
        if not record.is_pending:
            raise InvalidStatusTransitionError(record.status.value, target.value)

        from_wallet = await self._wallets.get_by_id(db, record.from_wallet_id)
        if from_wallet is None:
            raise WalletNotFoundError(record.from_wallet_id)
        to_wallet = await self._wallets.get_by_id(db, record.to_wallet_id)
        if to_wallet is None:
            raise WalletNotFoundError(record.to_wallet_id)
        return Transaction.restore(record, from_wallet, to_wallet)

    async def _resolve(
        self, db: AsyncSession, tx: Transaction, settle: bool
    ) -> TransactionRecord:
        try:
            if settle:
                await settle_transaction(
                    tx, db, self._wallets, self._announcements, self._users
                )
            record = await self._transactions.update_status(db, tx)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Trade %d resolved: status=%s", record.id, record.status.value)
        return record


class ListPendingTransactionsService:
    """PENDING trades where the caller is the receiving party."""

    def __init__(
        self,
        users: UserRepositoryProtocol | None = None,
        transactions: TransactionRepositoryProtocol | None = None,
        identity: IdentityResolverProtocol | None = None,
    ) -> None:
        self._users: UserRepositoryProtocol = users or UserRepository()
        self._transactions: TransactionRepositoryProtocol = (
            transactions or TransactionRepository()
        )
        self._identity: IdentityResolverProtocol = identity or JwtIdentityResolver()

    async def exec(self, db: AsyncSession, credential: str) -> list[TransactionResponse]:
        caller = self._identity.resolve(credential)
        user = await _load_user(self._users, db, caller.user_id)
        records = await self._transactions.list(
            db,
            ListTransactionsQuery(
                status=TransactionStatus.PENDING,
                to_wallet_id=user.wallet.id,
            ),
        )
        return [TransactionResponse.from_record(r) for r in records]


class TransactionQueryService:
    """Caller's trade history, both sides, newest first."""

    def __init__(
        self,
        transactions: TransactionRepositoryProtocol | None = None,
        identity: IdentityResolverProtocol | None = None,
    ) -> None:
        self._transactions: TransactionRepositoryProtocol = (
            transactions or TransactionRepository()
        )
        self._identity: IdentityResolverProtocol = identity or JwtIdentityResolver()

    async def list_mine(
        self,
        db: AsyncSession,
        credential: str,
        status: TransactionStatus | None,
        cursor: str | None,
        limit: int,
    ) -> TransactionListResponse:
        caller = self._identity.resolve(credential)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        records = await self._transactions.list(
            db,
            ListTransactionsQuery(
                status=status,
                party_user_id=caller.user_id,
                cursor_id=cursor_decode(cursor),
                limit=limit + 1,
            ),
        )
        has_more = len(records) > limit
        page = records[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return TransactionListResponse(
            items=[TransactionResponse.from_record(r) for r in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )
