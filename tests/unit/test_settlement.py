# tests/unit/test_settlement.py
"""Unit tests for settle_transaction.

Mocked repositories cover the branch logic; the in-memory fakes at the bottom
model the conditional UPDATEs so concurrent settlements can be raced.
"""
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.tm_announcement.domain.models import Announcement, Item
from src.tm_common.enums import FailureReason, TransactionStatus
from src.tm_trade.domain.models import Transaction
from src.tm_trade.domain.settlement import settle_transaction
from src.tm_user.domain.models import Wallet


class _Savepoint:
    def __init__(self, session: "FakeSession") -> None:
        self._session = session

    async def __aenter__(self) -> "_Savepoint":
        self._session.savepoints += 1
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self._session.rolled_back_savepoints += 1
        return False


class FakeSession:
    """Just enough AsyncSession for begin_nested()."""

    def __init__(self) -> None:
        self.savepoints = 0
        self.rolled_back_savepoints = 0

    def begin_nested(self) -> _Savepoint:
        return _Savepoint(self)


def _make_tx(buyer_balance: str = "100.00", price: str = "10.00", qty: int = 3,
             buyer_wallet_id: str = "w-buyer", seller_wallet_id: str = "w-seller",
             seller_user_id: str = "u-seller", announcement_id: str = "ann-1") -> Transaction:
    buyer = Wallet(id=buyer_wallet_id, user_id="u-buyer", balance=Decimal(buyer_balance))
    seller = Wallet(id=seller_wallet_id, user_id=seller_user_id, balance=Decimal("50.00"))
    ann = Announcement(
        id=announcement_id,
        owner_id=seller_user_id,
        owner_wallet=seller,
        item=Item(id="item-1", name="Shield"),
        value_per_item=Decimal(price),
        quantity_available=100,
    )
    return Transaction.create(buyer, ann, qty)


@pytest.fixture
def db():
    return FakeSession()


@pytest.fixture
def wallets():
    repo = MagicMock()
    repo.transfer = AsyncMock(return_value=(Decimal("70.00"), Decimal("80.00")))
    repo.get_by_id = AsyncMock()
    return repo


@pytest.fixture
def announcements():
    repo = MagicMock()
    repo.reserve_quantity = AsyncMock(return_value=2)
    return repo


@pytest.fixture
def users():
    repo = MagicMock()
    repo.add_user_item = AsyncMock()
    return repo


class TestSettleTransaction:
    @pytest.mark.asyncio
    async def test_success_accepts_and_moves_value(self, db, wallets, announcements, users):
        tx = _make_tx()

        result = await settle_transaction(tx, db, wallets, announcements, users)

        assert result is tx
        assert tx.status == TransactionStatus.ACCEPTED
        assert tx.from_wallet.balance == Decimal("70.00")
        assert tx.to_wallet.balance == Decimal("80.00")
        wallets.transfer.assert_awaited_once_with(db, "w-buyer", "w-seller", Decimal("30.00"))
        announcements.reserve_quantity.assert_awaited_once_with(db, "ann-1", 3)
        assert db.savepoints == 1
        assert db.rolled_back_savepoints == 0

    @pytest.mark.asyncio
    async def test_success_credits_buyer_inventory(self, db, wallets, announcements, users):
        tx = _make_tx(price="10.00", qty=3)

        await settle_transaction(tx, db, wallets, announcements, users)

        users.add_user_item.assert_awaited_once_with(
            db, "u-buyer", "item-1", 3, Decimal("10.00")
        )

    @pytest.mark.asyncio
    async def test_balances_follow_the_database(self, db, wallets, announcements, users):
        # Another trade debited the buyer since the wallet was loaded
        tx = _make_tx(buyer_balance="100.00")
        wallets.transfer = AsyncMock(return_value=(Decimal("40.00"), Decimal("80.00")))

        await settle_transaction(tx, db, wallets, announcements, users)

        assert tx.from_wallet.balance == Decimal("40.00")
        assert tx.to_wallet.balance == Decimal("80.00")

    @pytest.mark.asyncio
    async def test_insufficient_funds_fails_trade(self, db, wallets, announcements, users):
        tx = _make_tx(buyer_balance="20.00")
        wallets.transfer = AsyncMock(return_value=None)
        wallets.get_by_id = AsyncMock(
            return_value=Wallet(id="w-buyer", user_id="u-buyer", balance=Decimal("20.00"))
        )

        await settle_transaction(tx, db, wallets, announcements, users)

        assert tx.status == TransactionStatus.FAILED
        assert tx.failure_reason == FailureReason.INSUFFICIENT_FUNDS
        assert tx.from_wallet.balance == Decimal("20.00")
        assert tx.to_wallet.balance == Decimal("50.00")
        users.add_user_item.assert_not_awaited()
        assert db.rolled_back_savepoints == 1

    @pytest.mark.asyncio
    async def test_insufficient_quantity_fails_trade(self, db, wallets, announcements, users):
        tx = _make_tx()
        announcements.reserve_quantity = AsyncMock(return_value=None)

        await settle_transaction(tx, db, wallets, announcements, users)

        assert tx.status == TransactionStatus.FAILED
        assert tx.failure_reason == FailureReason.INSUFFICIENT_QUANTITY
        wallets.transfer.assert_not_awaited()
        assert tx.from_wallet.balance == Decimal("100.00")
        assert db.rolled_back_savepoints == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self, db, wallets, announcements, users):
        tx = _make_tx()
        users.add_user_item = AsyncMock(side_effect=RuntimeError("connection lost"))

        with pytest.raises(RuntimeError):
            await settle_transaction(tx, db, wallets, announcements, users)

        assert tx.status == TransactionStatus.PENDING
        assert db.rolled_back_savepoints == 1


# ---------------------------------------------------------------------------
# Concurrency: in-memory stores with atomic check-and-set
# ---------------------------------------------------------------------------


class InMemoryWallets:
    def __init__(self, balances: dict[str, Decimal]) -> None:
        self.balances = dict(balances)

    async def get_by_id(self, db, wallet_id):
        return Wallet(id=wallet_id, user_id=f"owner-{wallet_id}", balance=self.balances[wallet_id])

    async def transfer(self, db, from_wallet_id, to_wallet_id, amount):
        await asyncio.sleep(0)  # let the other settlement interleave
        # check-and-set without awaiting in between, like the guarded UPDATE
        if self.balances[from_wallet_id] < amount:
            return None
        self.balances[from_wallet_id] -= amount
        self.balances[to_wallet_id] += amount
        return self.balances[from_wallet_id], self.balances[to_wallet_id]


class InMemoryAnnouncements:
    def __init__(self, quantities: dict[str, int]) -> None:
        self.quantities = dict(quantities)

    async def reserve_quantity(self, db, announcement_id, quantity):
        await asyncio.sleep(0)
        if self.quantities[announcement_id] < quantity:
            return None
        self.quantities[announcement_id] -= quantity
        return self.quantities[announcement_id]


class InMemoryUsers:
    def __init__(self) -> None:
        self.credited: list[tuple[str, str, int]] = []

    async def add_user_item(self, db, user_id, item_id, quantity, bought_per):
        self.credited.append((user_id, item_id, quantity))


class TestConcurrentSettlement:
    @pytest.mark.asyncio
    async def test_two_debits_exceeding_balance_settle_exactly_once(self):
        store = InMemoryWallets({
            "w-buyer": Decimal("100.00"),
            "w-seller-a": Decimal("0.00"),
            "w-seller-b": Decimal("0.00"),
        })
        announcements = InMemoryAnnouncements({"ann-a": 10, "ann-b": 10})
        users = InMemoryUsers()
        # Both requests loaded the buyer wallet at 100 before either settled
        tx_a = _make_tx(price="80.00", qty=1, seller_wallet_id="w-seller-a",
                        seller_user_id="u-seller-a", announcement_id="ann-a")
        tx_b = _make_tx(price="80.00", qty=1, seller_wallet_id="w-seller-b",
                        seller_user_id="u-seller-b", announcement_id="ann-b")

        await asyncio.gather(
            settle_transaction(tx_a, FakeSession(), store, announcements, users),
            settle_transaction(tx_b, FakeSession(), store, announcements, users),
        )

        statuses = sorted([tx_a.status.value, tx_b.status.value])
        assert statuses == ["ACCEPTED", "FAILED"]
        failed = tx_a if tx_a.status == TransactionStatus.FAILED else tx_b
        assert failed.failure_reason == FailureReason.INSUFFICIENT_FUNDS
        assert store.balances["w-buyer"] == Decimal("20.00")
        assert sum(store.balances.values()) == Decimal("100.00")
        assert len(users.credited) == 1

    @pytest.mark.asyncio
    async def test_announcement_quantity_is_never_oversold(self):
        store = InMemoryWallets({"w-buyer": Decimal("1000.00"), "w-seller": Decimal("0.00")})
        announcements = InMemoryAnnouncements({"ann-1": 5})
        users = InMemoryUsers()
        txs = [_make_tx(buyer_balance="1000.00", price="1.00", qty=2) for _ in range(4)]

        await asyncio.gather(*(
            settle_transaction(tx, FakeSession(), store, announcements, users) for tx in txs
        ))

        accepted = [tx for tx in txs if tx.status == TransactionStatus.ACCEPTED]
        failed = [tx for tx in txs if tx.status == TransactionStatus.FAILED]
        assert len(accepted) == 2
        assert all(tx.failure_reason == FailureReason.INSUFFICIENT_QUANTITY for tx in failed)
        assert announcements.quantities["ann-1"] == 1
        assert store.balances["w-seller"] == Decimal("4.00")
