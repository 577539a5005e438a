"""tm_trade REST API — ask, resolve and list trades. All endpoints need a bearer credential."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tm_common.database import get_db_session
from src.tm_common.enums import TransactionStatus
from src.tm_common.response import ApiResponse, success_response
from src.tm_gateway.auth.dependencies import get_credential
from src.tm_trade.application.schemas import AskTradeRequest
from src.tm_trade.application.service import (
    AskTradeService,
    ListPendingTransactionsService,
    RespondToTradeService,
    TransactionQueryService,
)

router = APIRouter(prefix="/trades", tags=["trades"])

_ask_trade = AskTradeService()
_respond = RespondToTradeService()
_list_pending = ListPendingTransactionsService()
_query = TransactionQueryService()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
async def ask_trade(
    body: AskTradeRequest,
    credential: Annotated[str, Depends(get_credential)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _ask_trade.exec(db, body, credential)
    resp = success_response(data.model_dump(mode="json"), request)
    resp.message = f"Trade {data.status.value.lower()}"
    return resp


@router.get("/pending")
async def list_pending(
    credential: Annotated[str, Depends(get_credential)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    items = await _list_pending.exec(db, credential)
    return success_response({"items": [i.model_dump(mode="json") for i in items]}, request)


@router.get("")
async def list_mine(
    credential: Annotated[str, Depends(get_credential)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(settings.LIST_DEFAULT_LIMIT, ge=1, le=100, description="Items per page"),
    status_filter: TransactionStatus | None = Query(None, alias="status"),
) -> ApiResponse:
    data = await _query.list_mine(db, credential, status_filter, cursor, limit)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{transaction_id}/accept")
async def accept_trade(
    transaction_id: int,
    credential: Annotated[str, Depends(get_credential)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _respond.accept(db, transaction_id, credential)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{transaction_id}/reject")
async def reject_trade(
    transaction_id: int,
    credential: Annotated[str, Depends(get_credential)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _respond.reject(db, transaction_id, credential)
    return success_response(data.model_dump(mode="json"), request)
