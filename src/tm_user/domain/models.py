"""Domain models for tm_user — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from decimal import Decimal

from src.tm_common.enums import UserRole, UserStatus


@dataclass
class Wallet:
    id: str
    user_id: str
    balance: Decimal

    def __post_init__(self) -> None:
        if self.balance < 0:
            raise ValueError(f"Wallet {self.id} balance cannot be negative: {self.balance}")

    def can_afford(self, amount: Decimal) -> bool:
        return self.balance >= amount


@dataclass
class UserItem:
    """One holding lot of a catalog item."""

    item_id: str
    quantity: int
    bought_per: Decimal  # unit price paid for this lot

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(f"UserItem quantity cannot be negative: {self.quantity}")


@dataclass
class User:
    id: str
    name: str
    role: UserRole
    wallet: Wallet
    user_items: list[UserItem] = field(default_factory=list)
    status: UserStatus = UserStatus.OFFLINE
    socket_id: str | None = None
    avatar_url: str | None = None


@dataclass
class OnlineUser:
    """Presence projection — no wallet, no inventory."""

    id: str
    name: str
    status: UserStatus
    socket_id: str | None = None
    avatar_url: str | None = None
