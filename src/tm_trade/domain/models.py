"""Transaction domain model — pure dataclasses, no SQLAlchemy dependency.

State machine:

    PENDING ──settle()──▶ ACCEPTED
       │ ├──settle()/fail()──▶ FAILED
       │ └──reject()──▶ REJECTED

PENDING is the only initial state; the other three are terminal. After
creation only status (and the fields that travel with it) may change.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from src.tm_announcement.domain.models import Announcement, AnnouncementSnapshot
from src.tm_common.datetime_utils import utc_now
from src.tm_common.enums import FailureReason, TransactionStatus
from src.tm_common.errors import (
    InsufficientFundsError,
    InvalidStatusTransitionError,
    SelfTradeError,
    TradeValidationError,
)
from src.tm_user.domain.models import Wallet

_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset(
        {TransactionStatus.ACCEPTED, TransactionStatus.REJECTED, TransactionStatus.FAILED}
    ),
    TransactionStatus.ACCEPTED: frozenset(),
    TransactionStatus.REJECTED: frozenset(),
    TransactionStatus.FAILED: frozenset(),
}

# Fields assigned after construction: status changes, and persistence
# filling in id/timestamps.
_MUTABLE_FIELDS = frozenset({"status", "failure_reason", "id", "created_at", "updated_at"})


@dataclass
class TransactionRecord:
    """Persisted projection of a Transaction — what the repository stores and returns."""

    id: int
    from_wallet_id: str
    from_user_id: str
    to_wallet_id: str
    to_user_id: str
    announcement_id: str
    item_id: str
    value_per_item: Decimal
    quantity_items_asked: int
    amount: Decimal
    status: TransactionStatus
    failure_reason: FailureReason | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING


@dataclass(eq=False)
class Transaction:
    from_wallet: Wallet  # buyer
    to_wallet: Wallet    # seller
    quantity_items_asked: int
    announcement: AnnouncementSnapshot
    status: TransactionStatus = TransactionStatus.PENDING
    failure_reason: FailureReason | None = None
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.quantity_items_asked <= 0:
            raise TradeValidationError("Quantity asked must be greater than 0")
        if (
            self.from_wallet.user_id == self.to_wallet.user_id
            or self.from_wallet.id == self.to_wallet.id
        ):
            raise SelfTradeError()

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self.__dict__ and name not in _MUTABLE_FIELDS:
            raise AttributeError(f"Transaction.{name} is immutable")
        super().__setattr__(name, value)

    @classmethod
    def create(
        cls,
        from_wallet: Wallet,
        announcement: Announcement,
        quantity_items_asked: int,
    ) -> "Transaction":
        """New PENDING trade from `from_wallet` against the announcement owner's wallet."""
        return cls(
            from_wallet=from_wallet,
            to_wallet=announcement.owner_wallet,
            quantity_items_asked=quantity_items_asked,
            announcement=announcement.snapshot(),
        )

    @classmethod
    def restore(
        cls,
        record: TransactionRecord,
        from_wallet: Wallet,
        to_wallet: Wallet,
    ) -> "Transaction":
        """Rebuild from storage with current wallet balances and the stored price."""
        if from_wallet.id != record.from_wallet_id or to_wallet.id != record.to_wallet_id:
            raise ValueError(f"Wallets do not match transaction {record.id}")
        return cls(
            from_wallet=from_wallet,
            to_wallet=to_wallet,
            quantity_items_asked=record.quantity_items_asked,
            announcement=AnnouncementSnapshot(
                id=record.announcement_id,
                owner_id=record.to_user_id,
                item_id=record.item_id,
                value_per_item=record.value_per_item,
            ),
            status=record.status,
            failure_reason=record.failure_reason,
            id=record.id,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    @property
    def amount(self) -> Decimal:
        return self.quantity_items_asked * self.announcement.value_per_item

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.status]

    def settle(self) -> None:
        """Move `amount` from buyer to seller and finish as ACCEPTED.

        Raises:
            InsufficientFundsError: buyer cannot cover the amount. Status
                becomes FAILED and neither balance changes.
            InvalidStatusTransitionError: transaction is not PENDING.
        """
        self._check_transition(TransactionStatus.ACCEPTED)
        amount = self.amount
        if not self.from_wallet.can_afford(amount):
            self._transition(TransactionStatus.FAILED, FailureReason.INSUFFICIENT_FUNDS)
            raise InsufficientFundsError(amount, self.from_wallet.balance)
        self.from_wallet.balance -= amount
        self.to_wallet.balance += amount
        self._transition(TransactionStatus.ACCEPTED)

    def reject(self) -> None:
        self._transition(TransactionStatus.REJECTED)

    def fail(self, reason: FailureReason) -> None:
        self._transition(TransactionStatus.FAILED, reason)

    def _check_transition(self, target: TransactionStatus) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise InvalidStatusTransitionError(self.status.value, target.value)

    def _transition(
        self, target: TransactionStatus, reason: FailureReason | None = None
    ) -> None:
        self._check_transition(target)
        self.status = target
        self.failure_reason = reason
        self.updated_at = utc_now()
