import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from xplorium import crud
from xplorium.api import deps
from xplorium.core import security
from xplorium.core.exceptions import ConflictError
from xplorium.core.rate_limit import enforce_rate_limit
from xplorium.schemas.user import (
    LoginRequest,
    PasswordResetRequest,
    Token,
    UserCreate,
)
from xplorium.schemas.user import User as UserSchema

router = APIRouter()
logger = logging.getLogger(__name__)


def _email_key(email: str) -> str:
    return f"email:{email.strip().lower()}"


@router.post("/register", response_model=UserSchema, status_code=status.HTTP_201_CREATED)  # type: ignore[misc]
async def register(
    user_in: UserCreate,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Create a customer account.

    Limited to the ``auth`` budget per email address.
    """
    await enforce_rate_limit(_email_key(user_in.email), "auth")

    if await crud.user.get_by_email(db, email=user_in.email):
        raise ConflictError("A user with this email already exists")

    user = await crud.user.create(db, obj_in=user_in)
    logger.info("User %s registered", user.id)
    return user


@router.post("/login", response_model=Token, summary="User Login")  # type: ignore[misc]
async def login(
    credentials: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    **Authenticate User and Get Access Token**

    **Errors:**
    - `400`: Incorrect email/password or inactive user
    - `429`: Too many sign-in attempts for this email
    """
    limit = await enforce_rate_limit(_email_key(credentials.email), "auth")
    response.headers.update(limit.headers())

    user = await crud.user.authenticate(
        db, email=credentials.email, password=credentials.password
    )
    if not user:
        raise HTTPException(status_code=400, detail="Incorrect email or password")
    elif not crud.user.is_active(user):
        raise HTTPException(status_code=400, detail="Inactive user")

    additional_claims = {
        "role": user.role.value,
        "is_admin": crud.user.is_admin(user),
    }
    access_token = security.create_access_token(
        user.id, additional_claims=additional_claims
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/password-reset", status_code=status.HTTP_202_ACCEPTED)  # type: ignore[misc]
async def request_password_reset(
    body: PasswordResetRequest,
    db: AsyncSession = Depends(deps.get_db),
) -> Dict[str, str]:
    """
    Start a password reset.

    The response is the same whether or not the account exists.
    """
    await enforce_rate_limit(_email_key(body.email), "strict")

    user = await crud.user.get_by_email(db, email=body.email)
    if user and crud.user.is_active(user):
        security.create_password_reset_token(user.email)
        # TODO: deliver the reset token by email once an outbound mail provider is configured
        logger.info("Password reset token issued for user %s", user.id)

    return {"message": "If the account exists, a reset link has been sent"}
