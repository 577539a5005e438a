"""FastAPI dependency: get_credential.

Routers hand the raw bearer credential to the use case, which resolves the
caller identity itself through its injected IdentityResolverProtocol.

Usage in any protected router:
    from src.tm_gateway.auth.dependencies import get_credential

    @router.get("/protected")
    async def protected(credential: str = Depends(get_credential)):
        ...
"""

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from src.tm_common.errors import InvalidCredentialsError

# tokenUrl points Swagger UI at the upstream auth service's login endpoint
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def get_credential(token: str | None = Depends(oauth2_scheme)) -> str:
    """Return the bearer token. Raises InvalidCredentialsError (401) if absent."""
    if not token:
        raise InvalidCredentialsError()
    return token
