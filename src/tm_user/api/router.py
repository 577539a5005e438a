"""tm_user REST API — presence endpoints, all require a bearer credential."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.database import get_db_session
from src.tm_common.response import ApiResponse, success_response
from src.tm_gateway.auth.dependencies import get_credential
from src.tm_user.application.schemas import PresenceRequest
from src.tm_user.application.service import PresenceService

router = APIRouter(prefix="/users", tags=["users"])

_service = PresenceService()


@router.get("/online")
async def list_online_users(
    credential: Annotated[str, Depends(get_credential)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_online(db, credential)
    return success_response(data.model_dump(mode="json"), request)


@router.put("/me/presence")
async def set_presence(
    body: PresenceRequest,
    credential: Annotated[str, Depends(get_credential)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.set_presence(db, credential, body.status, body.socket_id)
    return success_response({"status": body.status.value}, request)
