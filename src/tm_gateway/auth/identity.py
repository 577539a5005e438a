"""Identity resolution: credential -> caller identity.

Use cases receive an IdentityResolverProtocol in their constructor instead of
calling decode_token directly, so tests can substitute a stub resolver.
"""

import uuid
from dataclasses import dataclass
from typing import Protocol

from src.tm_common.errors import InvalidCredentialsError
from src.tm_gateway.auth.jwt_handler import decode_token


@dataclass(frozen=True)
class Identity:
    user_id: str


class IdentityResolverProtocol(Protocol):
    def resolve(self, credential: str) -> Identity: ...


class JwtIdentityResolver:
    """Stateless; one instance can be shared by every service.

    The subject is returned in canonical UUID form so it compares equal to the
    ids Postgres hands back.
    """

    def resolve(self, credential: str) -> Identity:
        if not credential:
            raise InvalidCredentialsError()
        payload = decode_token(credential)
        user_id = payload.get("sub")
        if not user_id:
            raise InvalidCredentialsError()
        try:
            canonical = str(uuid.UUID(str(user_id)))
        except ValueError:
            raise InvalidCredentialsError() from None
        return Identity(user_id=canonical)
