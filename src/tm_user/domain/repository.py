"""Repository Protocols — dependency inversion for testability.

Unit tests inject a mock that conforms to these Protocols.
Infrastructure layer provides the real implementation.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.enums import UserRole, UserStatus
from src.tm_user.domain.models import OnlineUser, User, Wallet


@dataclass(frozen=True)
class FindUserQuery:
    """Lookup criteria; every field is optional, set fields are ANDed."""

    id: str | None = None
    name: str | None = None
    role: UserRole | None = None
    wallet_id: str | None = None
    socket_id: str | None = None

    def is_empty(self) -> bool:
        return all(
            v is None for v in (self.id, self.name, self.role, self.wallet_id, self.socket_id)
        )


@dataclass(frozen=True)
class UserUpdate:
    """The only user fields a generic update may touch.

    Wallet balance and inventory are owned by settlement and have no
    counterpart here.
    """

    status: UserStatus | None = None
    socket_id: str | None = None


class UserRepositoryProtocol(Protocol):
    async def find_by(self, db: AsyncSession, query: FindUserQuery) -> User | None: ...

    async def update(self, db: AsyncSession, changes: UserUpdate, user_id: str) -> None: ...

    async def update_by_socket_id(
        self, db: AsyncSession, changes: UserUpdate, socket_id: str
    ) -> int: ...

    async def list_online(self, db: AsyncSession, exclude_user_id: str) -> list[OnlineUser]: ...

    async def add_user_item(
        self,
        db: AsyncSession,
        user_id: str,
        item_id: str,
        quantity: int,
        bought_per: Decimal,
    ) -> None: ...


class WalletRepositoryProtocol(Protocol):
    async def get_by_id(self, db: AsyncSession, wallet_id: str) -> Wallet | None: ...

    async def transfer(
        self,
        db: AsyncSession,
        from_wallet_id: str,
        to_wallet_id: str,
        amount: Decimal,
    ) -> tuple[Decimal, Decimal] | None: ...
