from typing import Any, AsyncGenerator, Callable, Optional

from fastapi import Depends, HTTPException, Request, Response
from fastapi.security import OAuth2PasswordBearer
from jose.exceptions import JWTError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from xplorium import crud
from xplorium.core import security
from xplorium.core.exceptions import AuthenticationError, AuthorizationError
from xplorium.core.rate_limit import RateLimitResult, enforce_rate_limit, get_client_ip
from xplorium.core.settings import settings
from xplorium.database import SessionLocal
from xplorium.models.user import User, UserRole
from xplorium.schemas.user import TokenPayload

reusable_oauth2 = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/login")
optional_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/login", auto_error=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session


async def _user_from_token(db: AsyncSession, token: str) -> User:
    try:
        payload = security.decode_token(token)
        token_data = TokenPayload(**payload)
    except (JWTError, ValidationError):
        raise AuthenticationError("Could not validate credentials")
    user = await crud.user.get(db, id=token_data.sub)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def get_current_user(
    db: AsyncSession = Depends(get_db), token: str = Depends(reusable_oauth2)
) -> User:
    return await _user_from_token(db, token)


async def get_optional_user(
    db: AsyncSession = Depends(get_db),
    token: Optional[str] = Depends(optional_oauth2),
) -> Optional[User]:
    """Signed-in user when a bearer token is sent, None for anonymous requests"""
    if not token:
        return None
    return await _user_from_token(db, token)


def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    if not crud.user.is_active(current_user):
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def require_role(required_role: UserRole) -> Any:
    """Dependency factory for role-based access control"""

    def role_dependency(
        current_user: User = Depends(get_current_active_user),
    ) -> User:
        if not crud.user.has_role(current_user, required_role):
            raise AuthorizationError(f"Role '{required_role.value}' or higher required")
        return current_user

    return role_dependency


def rate_limited_by_ip(action: str) -> Callable[..., Any]:
    """
    Dependency factory applying the ``action`` limit to the caller's IP.

    Allowed responses carry the ``X-RateLimit-*`` headers.
    """

    async def rate_limit_dependency(request: Request, response: Response) -> RateLimitResult:
        client_ip = get_client_ip(request.headers)
        if client_ip == "unknown" and request.client:
            client_ip = request.client.host
        result = await enforce_rate_limit(f"ip:{client_ip}", action)
        response.headers.update(result.headers())
        return result

    return rate_limit_dependency
