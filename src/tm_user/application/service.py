"""PresenceService — online/offline tracking and the online-users listing.

Shares the User read path with the trade flow but carries no trading logic.
Only presence fields go through UserRepositoryProtocol.update.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.enums import UserStatus
from src.tm_gateway.auth.identity import IdentityResolverProtocol, JwtIdentityResolver
from src.tm_user.application.schemas import OnlineUserItem, OnlineUsersResponse
from src.tm_user.domain.repository import UserRepositoryProtocol, UserUpdate
from src.tm_user.infrastructure.persistence import UserRepository

logger = logging.getLogger(__name__)


class PresenceService:
    def __init__(
        self,
        repo: UserRepositoryProtocol | None = None,
        identity: IdentityResolverProtocol | None = None,
    ) -> None:
        self._repo: UserRepositoryProtocol = repo or UserRepository()
        self._identity: IdentityResolverProtocol = identity or JwtIdentityResolver()

    async def list_online(self, db: AsyncSession, credential: str) -> OnlineUsersResponse:
        caller = self._identity.resolve(credential)
        users = await self._repo.list_online(db, exclude_user_id=caller.user_id)
        return OnlineUsersResponse(items=[OnlineUserItem.from_domain(u) for u in users])

    async def set_presence(
        self,
        db: AsyncSession,
        credential: str,
        status: UserStatus,
        socket_id: str | None,
    ) -> None:
        caller = self._identity.resolve(credential)
        try:
            await self._repo.update(
                db, UserUpdate(status=status, socket_id=socket_id), caller.user_id
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.debug("Presence: user=%s status=%s", caller.user_id, status.value)

    async def mark_offline_by_socket(self, db: AsyncSession, socket_id: str) -> int:
        """Disconnect hook for the socket layer. Returns the number of users updated."""
        try:
            count = await self._repo.update_by_socket_id(
                db, UserUpdate(status=UserStatus.OFFLINE), socket_id
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return count
