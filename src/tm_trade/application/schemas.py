"""Pydantic schemas and cursor utilities for tm_trade API."""

import base64
import json
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from src.tm_common.enums import FailureReason, TransactionStatus
from src.tm_common.errors import TradeValidationError
from src.tm_common.datetime_utils import to_iso
from src.tm_common.money import money_to_display
from src.tm_trade.domain.models import TransactionRecord

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id.

    Raises TradeValidationError for anything cursor_encode could not have produced.
    """
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode(), validate=True).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError) as exc:
        raise TradeValidationError("Invalid pagination cursor") from exc


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class AskTradeRequest(BaseModel):
    # Unknown keys (an "amount" or "price" sent by a client) are dropped:
    # the amount is always derived from the announcement.
    model_config = ConfigDict(extra="ignore")

    announcement_id: uuid.UUID
    # Positivity is checked by the use case so the error carries a trade code.
    quantity_items_asked: int


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TransactionResponse(BaseModel):
    id: int
    status: TransactionStatus
    failure_reason: FailureReason | None
    announcement_id: str
    item_id: str
    from_user_id: str
    from_wallet_id: str
    to_user_id: str
    to_wallet_id: str
    quantity_items_asked: int
    value_per_item: Decimal
    amount: Decimal
    amount_display: str
    created_at: str  # ISO8601 string
    updated_at: str

    @classmethod
    def from_record(cls, record: TransactionRecord) -> "TransactionResponse":
        return cls(
            id=record.id,
            status=record.status,
            failure_reason=record.failure_reason,
            announcement_id=record.announcement_id,
            item_id=record.item_id,
            from_user_id=record.from_user_id,
            from_wallet_id=record.from_wallet_id,
            to_user_id=record.to_user_id,
            to_wallet_id=record.to_wallet_id,
            quantity_items_asked=record.quantity_items_asked,
            value_per_item=record.value_per_item,
            amount=record.amount,
            amount_display=money_to_display(record.amount),
            created_at=to_iso(record.created_at),
            updated_at=to_iso(record.updated_at),
        )


class TransactionListResponse(BaseModel):
    items: list[TransactionResponse]
    next_cursor: str | None
    has_more: bool
