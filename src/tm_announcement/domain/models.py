"""Domain models for tm_announcement — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.tm_common.money import validate_unit_price
from src.tm_user.domain.models import Wallet


@dataclass(frozen=True)
class Item:
    id: str
    name: str


@dataclass(frozen=True)
class AnnouncementSnapshot:
    """Price terms frozen into a Transaction when it is created."""

    id: str
    owner_id: str
    item_id: str
    value_per_item: Decimal


@dataclass
class Announcement:
    """A standing sell offer. Owned by exactly one user."""

    id: str
    owner_id: str
    owner_wallet: Wallet
    item: Item
    value_per_item: Decimal
    quantity_available: int
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        validate_unit_price(self.value_per_item)
        if self.quantity_available < 0:
            raise ValueError(
                f"Announcement {self.id} quantity cannot be negative: {self.quantity_available}"
            )

    def is_owned_by(self, user_id: str) -> bool:
        return self.owner_id == user_id

    def snapshot(self) -> AnnouncementSnapshot:
        return AnnouncementSnapshot(
            id=self.id,
            owner_id=self.owner_id,
            item_id=self.item.id,
            value_per_item=self.value_per_item,
        )
