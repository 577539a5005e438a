"""AnnouncementRepository Protocol — interface contract for persistence layer."""

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_announcement.domain.models import Announcement


@dataclass(frozen=True)
class FindAnnouncementQuery:
    id: str | None = None
    owner_id: str | None = None
    item_id: str | None = None


class AnnouncementRepositoryProtocol(Protocol):
    async def find_by(
        self, db: AsyncSession, query: FindAnnouncementQuery
    ) -> Announcement | None: ...

    async def reserve_quantity(
        self, db: AsyncSession, announcement_id: str, quantity: int
    ) -> int | None: ...
