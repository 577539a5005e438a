"""Integration-test fixtures.

All integration tests share a single event loop so that the module-level
SQLAlchemy async engine pool (created at import time) remains valid across
the entire test session. The whole directory is skipped when the database at
DATABASE_URL is unreachable or not migrated.
"""

import uuid
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.main import app
from src.tm_common.database import async_session_factory, engine


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def db_ready() -> None:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM transactions LIMIT 0"))
    except Exception as exc:  # noqa: BLE001
        pytest.skip(f"database not available: {exc}")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client(db_ready: None) -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class Seeder:
    """Inserts users, wallets, items and announcements straight into the DB."""

    async def user(self, balance: str = "0.00") -> tuple[str, str]:
        """Create a user with a wallet. Returns (user_id, wallet_id)."""
        user_id, wallet_id = str(uuid.uuid4()), str(uuid.uuid4())
        async with async_session_factory() as db:
            await db.execute(
                text("INSERT INTO users (id, name) VALUES (CAST(:id AS UUID), :name)"),
                {"id": user_id, "name": f"it_{user_id[:12]}"},
            )
            await db.execute(
                text("""
                    INSERT INTO wallets (id, user_id, balance)
                    VALUES (CAST(:id AS UUID), CAST(:user_id AS UUID), :balance)
                """),
                {"id": wallet_id, "user_id": user_id, "balance": Decimal(balance)},
            )
            await db.commit()
        return user_id, wallet_id

    async def announcement(self, owner_id: str, price: str, quantity: int) -> tuple[str, str]:
        """Create an item and an offer for it. Returns (announcement_id, item_id)."""
        item_id, ann_id = str(uuid.uuid4()), str(uuid.uuid4())
        async with async_session_factory() as db:
            await db.execute(
                text("INSERT INTO items (id, name) VALUES (CAST(:id AS UUID), :name)"),
                {"id": item_id, "name": f"item_{item_id[:12]}"},
            )
            await db.execute(
                text("""
                    INSERT INTO announcements (id, user_id, item_id, value_per_item,
                                               quantity_available)
                    VALUES (CAST(:id AS UUID), CAST(:owner AS UUID), CAST(:item AS UUID),
                            :price, :qty)
                """),
                {"id": ann_id, "owner": owner_id, "item": item_id,
                 "price": Decimal(price), "qty": quantity},
            )
            await db.commit()
        return ann_id, item_id

    async def balance(self, wallet_id: str) -> Decimal:
        async with async_session_factory() as db:
            result = await db.execute(
                text("SELECT balance FROM wallets WHERE id = CAST(:id AS UUID)"),
                {"id": wallet_id},
            )
            return Decimal(result.scalar_one())

    async def quantity(self, announcement_id: str) -> int:
        async with async_session_factory() as db:
            result = await db.execute(
                text("SELECT quantity_available FROM announcements WHERE id = CAST(:id AS UUID)"),
                {"id": announcement_id},
            )
            return int(result.scalar_one())

    async def holding(self, user_id: str, item_id: str) -> int:
        async with async_session_factory() as db:
            result = await db.execute(
                text("""
                    SELECT COALESCE(SUM(quantity), 0) FROM user_items
                    WHERE user_id = CAST(:u AS UUID) AND item_id = CAST(:i AS UUID)
                """),
                {"u": user_id, "i": item_id},
            )
            return int(result.scalar_one())


@pytest.fixture
def seed(db_ready: None) -> Seeder:
    return Seeder()

