# tests/unit/test_presence_service.py
"""Unit tests for PresenceService using a mock UserRepository."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.tm_common.enums import UserStatus
from src.tm_common.errors import InvalidCredentialsError
from src.tm_gateway.auth.identity import Identity
from src.tm_user.application.service import PresenceService
from src.tm_user.domain.models import OnlineUser
from src.tm_user.domain.repository import UserUpdate


@pytest.fixture
def db():
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def mock_repo():
    return MagicMock()


@pytest.fixture
def identity():
    resolver = MagicMock()
    resolver.resolve.return_value = Identity(user_id="u-1")
    return resolver


class TestListOnline:
    @pytest.mark.asyncio
    async def test_excludes_caller(self, db, mock_repo, identity):
        mock_repo.list_online = AsyncMock(return_value=[
            OnlineUser(id="u-2", name="bob", status=UserStatus.ONLINE, socket_id="s-2"),
        ])
        svc = PresenceService(repo=mock_repo, identity=identity)

        resp = await svc.list_online(db, "token")

        assert [u.name for u in resp.items] == ["bob"]
        mock_repo.list_online.assert_awaited_once_with(db, exclude_user_id="u-1")

    @pytest.mark.asyncio
    async def test_socket_id_is_not_exposed(self, db, mock_repo, identity):
        mock_repo.list_online = AsyncMock(return_value=[
            OnlineUser(id="u-2", name="bob", status=UserStatus.ONLINE, socket_id="s-2"),
        ])
        svc = PresenceService(repo=mock_repo, identity=identity)

        resp = await svc.list_online(db, "token")

        assert "socket_id" not in resp.model_dump()["items"][0]


class TestSetPresence:
    @pytest.mark.asyncio
    async def test_updates_and_commits(self, db, mock_repo, identity):
        mock_repo.update = AsyncMock()
        svc = PresenceService(repo=mock_repo, identity=identity)

        await svc.set_presence(db, "token", UserStatus.ONLINE, "sock-1")

        mock_repo.update.assert_awaited_once_with(
            db, UserUpdate(status=UserStatus.ONLINE, socket_id="sock-1"), "u-1"
        )
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, db, mock_repo, identity):
        mock_repo.update = AsyncMock(side_effect=RuntimeError("db down"))
        svc = PresenceService(repo=mock_repo, identity=identity)

        with pytest.raises(RuntimeError):
            await svc.set_presence(db, "token", UserStatus.OFFLINE, None)
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bad_credential_touches_nothing(self, db, mock_repo, identity):
        identity.resolve.side_effect = InvalidCredentialsError()
        mock_repo.update = AsyncMock()
        svc = PresenceService(repo=mock_repo, identity=identity)

        with pytest.raises(InvalidCredentialsError):
            await svc.set_presence(db, "bad", UserStatus.ONLINE, None)
        mock_repo.update.assert_not_awaited()


class TestMarkOfflineBySocket:
    @pytest.mark.asyncio
    async def test_returns_updated_count(self, db, mock_repo, identity):
        mock_repo.update_by_socket_id = AsyncMock(return_value=1)
        svc = PresenceService(repo=mock_repo, identity=identity)

        count = await svc.mark_offline_by_socket(db, "sock-1")

        assert count == 1
        mock_repo.update_by_socket_id.assert_awaited_once_with(
            db, UserUpdate(status=UserStatus.OFFLINE), "sock-1"
        )
        db.commit.assert_awaited_once()
