"""UserRepository / WalletRepository — concrete implementations of the tm_user Protocols.

Wallet balance changes use one atomic PostgreSQL statement guarded by
`balance >= :amount`. A NULL debit result means the buyer could not afford the
transfer; nothing was written.

Transaction ownership: the CALLER (application service) commits or rolls back.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.enums import UserRole, UserStatus
from src.tm_common.errors import WalletNotFoundError
from src.tm_user.domain.models import OnlineUser, User, UserItem, Wallet
from src.tm_user.domain.repository import FindUserQuery, UserUpdate

# ---------------------------------------------------------------------------
# SQL: users
# ---------------------------------------------------------------------------

_FIND_USER_SQL = text("""
    SELECT u.id, u.name, u.role, u.status, u.socket_id, u.avatar_url,
           w.id AS wallet_id, w.balance AS wallet_balance
    FROM users u
    LEFT JOIN wallets w ON w.user_id = u.id
    WHERE (CAST(:id AS TEXT) IS NULL OR u.id = CAST(:id AS UUID))
      AND (CAST(:name AS TEXT) IS NULL OR u.name = CAST(:name AS TEXT))
      AND (CAST(:role AS TEXT) IS NULL OR u.role = CAST(:role AS TEXT))
      AND (CAST(:wallet_id AS TEXT) IS NULL OR w.id = CAST(:wallet_id AS UUID))
      AND (CAST(:socket_id AS TEXT) IS NULL OR u.socket_id = CAST(:socket_id AS TEXT))
    LIMIT 1
""")

_LIST_USER_ITEMS_SQL = text("""
    SELECT item_id, quantity, bought_per
    FROM user_items
    WHERE user_id = CAST(:user_id AS UUID)
    ORDER BY id
""")

_UPDATE_USER_SQL = text("""
    UPDATE users
    SET status    = COALESCE(CAST(:status AS TEXT), status),
        socket_id = COALESCE(CAST(:socket_id AS TEXT), socket_id),
        updated_at = NOW()
    WHERE id = CAST(:user_id AS UUID)
""")

_UPDATE_BY_SOCKET_SQL = text("""
    UPDATE users
    SET status = COALESCE(CAST(:status AS TEXT), status),
        updated_at = NOW()
    WHERE socket_id = :socket_id
""")

_LIST_ONLINE_SQL = text("""
    SELECT id, name, status, socket_id, avatar_url
    FROM users
    WHERE status = 'ONLINE'
      AND id <> CAST(:exclude_user_id AS UUID)
    ORDER BY name
""")

_UPSERT_USER_ITEM_SQL = text("""
    INSERT INTO user_items (user_id, item_id, quantity, bought_per)
    VALUES (CAST(:user_id AS UUID), CAST(:item_id AS UUID), :quantity, :bought_per)
    ON CONFLICT (user_id, item_id, bought_per) DO UPDATE
        SET quantity = user_items.quantity + EXCLUDED.quantity,
            updated_at = NOW()
""")

# ---------------------------------------------------------------------------
# SQL: wallets
# ---------------------------------------------------------------------------

_GET_WALLET_SQL = text("""
    SELECT id, user_id, balance
    FROM wallets
    WHERE id = CAST(:wallet_id AS UUID)
""")

# Debit and credit in one statement. The credit only runs when the guarded
# debit matched, and the outer SELECT always yields exactly one row.
_TRANSFER_SQL = text("""
    WITH debit AS (
        UPDATE wallets
        SET balance = balance - :amount,
            version = version + 1,
            updated_at = NOW()
        WHERE id = CAST(:from_wallet_id AS UUID) AND balance >= :amount
        RETURNING balance
    ), credit AS (
        UPDATE wallets
        SET balance = balance + :amount,
            version = version + 1,
            updated_at = NOW()
        WHERE id = CAST(:to_wallet_id AS UUID) AND EXISTS (SELECT 1 FROM debit)
        RETURNING balance
    )
    SELECT (SELECT balance FROM debit)  AS from_balance,
           (SELECT balance FROM credit) AS to_balance
""")


def _row_to_user(row: object, items: list[UserItem]) -> User:
    wallet_id = row.wallet_id  # type: ignore[attr-defined]
    user_id = str(row.id)  # type: ignore[attr-defined]
    if wallet_id is None:
        # Entities require a wallet; a user row without one is a data error.
        raise WalletNotFoundError(f"user {user_id}")
    return User(
        id=user_id,
        name=row.name,  # type: ignore[attr-defined]
        role=UserRole(row.role),  # type: ignore[attr-defined]
        status=UserStatus(row.status),  # type: ignore[attr-defined]
        socket_id=row.socket_id,  # type: ignore[attr-defined]
        avatar_url=row.avatar_url,  # type: ignore[attr-defined]
        wallet=Wallet(
            id=str(wallet_id),
            user_id=user_id,
            balance=Decimal(row.wallet_balance),  # type: ignore[attr-defined]
        ),
        user_items=items,
    )


def _row_to_user_item(row: object) -> UserItem:
    return UserItem(
        item_id=str(row.item_id),  # type: ignore[attr-defined]
        quantity=row.quantity,  # type: ignore[attr-defined]
        bought_per=Decimal(row.bought_per),  # type: ignore[attr-defined]
    )


def _row_to_online_user(row: object) -> OnlineUser:
    return OnlineUser(
        id=str(row.id),  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        status=UserStatus(row.status),  # type: ignore[attr-defined]
        socket_id=row.socket_id,  # type: ignore[attr-defined]
        avatar_url=row.avatar_url,  # type: ignore[attr-defined]
    )


def _row_to_wallet(row: object) -> Wallet:
    return Wallet(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        balance=Decimal(row.balance),  # type: ignore[attr-defined]
    )


class UserRepository:
    """Loads users together with their wallet and inventory."""

    async def find_by(self, db: AsyncSession, query: FindUserQuery) -> User | None:
        if query.is_empty():
            raise ValueError("FindUserQuery needs at least one criterion")
        result = await db.execute(
            _FIND_USER_SQL,
            {
                "id": query.id,
                "name": query.name,
                "role": query.role.value if query.role else None,
                "wallet_id": query.wallet_id,
                "socket_id": query.socket_id,
            },
        )
        row = result.fetchone()
        if row is None:
            return None
        items_result = await db.execute(_LIST_USER_ITEMS_SQL, {"user_id": str(row.id)})
        items = [_row_to_user_item(r) for r in items_result.fetchall()]
        return _row_to_user(row, items)

    async def update(self, db: AsyncSession, changes: UserUpdate, user_id: str) -> None:
        await db.execute(
            _UPDATE_USER_SQL,
            {
                "user_id": user_id,
                "status": changes.status.value if changes.status else None,
                "socket_id": changes.socket_id,
            },
        )

    async def update_by_socket_id(
        self, db: AsyncSession, changes: UserUpdate, socket_id: str
    ) -> int:
        result = await db.execute(
            _UPDATE_BY_SOCKET_SQL,
            {
                "socket_id": socket_id,
                "status": changes.status.value if changes.status else None,
            },
        )
        return int(result.rowcount or 0)  # type: ignore[attr-defined]

    async def list_online(self, db: AsyncSession, exclude_user_id: str) -> list[OnlineUser]:
        result = await db.execute(_LIST_ONLINE_SQL, {"exclude_user_id": exclude_user_id})
        return [_row_to_online_user(row) for row in result.fetchall()]

    async def add_user_item(
        self,
        db: AsyncSession,
        user_id: str,
        item_id: str,
        quantity: int,
        bought_per: Decimal,
    ) -> None:
        await db.execute(
            _UPSERT_USER_ITEM_SQL,
            {
                "user_id": user_id,
                "item_id": item_id,
                "quantity": quantity,
                "bought_per": bought_per,
            },
        )


class WalletRepository:
    """Wallet reads plus the guarded transfer used by settlement."""

    async def get_by_id(self, db: AsyncSession, wallet_id: str) -> Wallet | None:
        result = await db.execute(_GET_WALLET_SQL, {"wallet_id": wallet_id})
        row = result.fetchone()
        return _row_to_wallet(row) if row else None

    async def transfer(
        self,
        db: AsyncSession,
        from_wallet_id: str,
        to_wallet_id: str,
        amount: Decimal,
    ) -> tuple[Decimal, Decimal] | None:
        """Move `amount` between wallets atomically.

        Returns (from_balance_after, to_balance_after), or None when the
        source wallet cannot cover the amount (nothing is written).

        Raises:
            WalletNotFoundError: the debit matched but the receiving wallet
                does not exist. The caller must roll back to undo the debit.
        """
        result = await db.execute(
            _TRANSFER_SQL,
            {
                "from_wallet_id": from_wallet_id,
                "to_wallet_id": to_wallet_id,
                "amount": amount,
            },
        )
        row = result.fetchone()
        if row is None or row.from_balance is None:
            return None
        if row.to_balance is None:
            raise WalletNotFoundError(to_wallet_id)
        return Decimal(row.from_balance), Decimal(row.to_balance)
