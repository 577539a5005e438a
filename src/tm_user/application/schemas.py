"""Pydantic schemas for tm_user API."""

from pydantic import BaseModel

from src.tm_common.enums import UserStatus
from src.tm_user.domain.models import OnlineUser


class PresenceRequest(BaseModel):
    status: UserStatus
    socket_id: str | None = None


class OnlineUserItem(BaseModel):
    id: str
    name: str
    status: UserStatus
    avatar_url: str | None

    @classmethod
    def from_domain(cls, user: OnlineUser) -> "OnlineUserItem":
        return cls(
            id=user.id,
            name=user.name,
            status=user.status,
            avatar_url=user.avatar_url,
        )


class OnlineUsersResponse(BaseModel):
    items: list[OnlineUserItem]
