"""Trade settlement — reserve the items, move the money, credit the inventory.

The database decides: quantity and funds are each taken with one guarded
UPDATE inside a savepoint, so concurrent trades on the same wallet or the same
announcement cannot both pass on a stale read. The entity then replays the
transfer from the balances the database settled on.

Settlement failures (short on funds or quantity) roll back the savepoint and
leave the transaction FAILED; the caller still records it.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_announcement.domain.repository import AnnouncementRepositoryProtocol
from src.tm_common.enums import FailureReason
from src.tm_common.errors import InsufficientFundsError, InsufficientQuantityError
from src.tm_trade.domain.models import Transaction
from src.tm_user.domain.repository import UserRepositoryProtocol, WalletRepositoryProtocol

logger = logging.getLogger(__name__)


async def settle_transaction(
    tx: Transaction,
    db: AsyncSession,
    wallets: WalletRepositoryProtocol,
    announcements: AnnouncementRepositoryProtocol,
    users: UserRepositoryProtocol,
) -> Transaction:
    """Drive a PENDING transaction to ACCEPTED or FAILED. Mutates and returns tx."""
    amount = tx.amount
    try:
        async with db.begin_nested():
            remaining = await announcements.reserve_quantity(
                db, tx.announcement.id, tx.quantity_items_asked
            )
            if remaining is None:
                raise InsufficientQuantityError(tx.quantity_items_asked)

            balances = await wallets.transfer(db, tx.from_wallet.id, tx.to_wallet.id, amount)
            if balances is None:
                current = await wallets.get_by_id(db, tx.from_wallet.id)
                raise InsufficientFundsError(
                    amount, current.balance if current else Decimal("0")
                )

            await users.add_user_item(
                db,
                tx.from_wallet.user_id,
                tx.announcement.item_id,
                tx.quantity_items_asked,
                tx.announcement.value_per_item,
            )
    except InsufficientQuantityError:
        tx.fail(FailureReason.INSUFFICIENT_QUANTITY)
        logger.warning(
            "Trade failed: announcement=%s short of %d items",
            tx.announcement.id,
            tx.quantity_items_asked,
        )
        return tx
    except InsufficientFundsError as exc:
        tx.fail(FailureReason.INSUFFICIENT_FUNDS)
        logger.warning(
            "Trade failed: wallet=%s required=%s available=%s",
            tx.from_wallet.id,
            exc.required,
            exc.available,
        )
        return tx

    from_after, to_after = balances
    tx.from_wallet.balance = from_after + amount
    tx.to_wallet.balance = to_after - amount
    tx.settle()

    logger.info(
        "Trade settled: announcement=%s qty=%d amount=%s from=%s to=%s",
        tx.announcement.id,
        tx.quantity_items_asked,
        amount,
        tx.from_wallet.id,
        tx.to_wallet.id,
    )
    return tx
