from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union, cast

from jose import jwt
from passlib.context import CryptContext

from .settings import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = settings.security.JWT_ALGORITHM
PASSWORD_RESET_PURPOSE = "password_reset"


def create_access_token(
    subject: Union[str, Any],
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[dict[str, Any]] = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta
        else timedelta(minutes=settings.security.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode: dict[str, Any] = {"exp": expire, "sub": str(subject)}

    if additional_claims:
        to_encode.update(additional_claims)

    encoded_jwt = jwt.encode(to_encode, settings.security.SECRET_KEY, algorithm=ALGORITHM)
    return cast(str, encoded_jwt)


def create_password_reset_token(email: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.security.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES
    )
    to_encode: dict[str, Any] = {
        "exp": expire,
        "sub": email,
        "purpose": PASSWORD_RESET_PURPOSE,
    }
    encoded_jwt = jwt.encode(to_encode, settings.security.SECRET_KEY, algorithm=ALGORITHM)
    return cast(str, encoded_jwt)


def decode_token(token: str) -> dict[str, Any]:
    return cast(
        dict[str, Any],
        jwt.decode(token, settings.security.SECRET_KEY, algorithms=[ALGORITHM]),
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return cast(bool, pwd_context.verify(plain_password, hashed_password))


def get_password_hash(password: str) -> str:
    return cast(str, pwd_context.hash(password))
