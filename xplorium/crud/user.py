from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession

from xplorium.models.user import User, UserRole
from xplorium.schemas.user import UserCreate

from ..core.security import get_password_hash, verify_password


async def get(db: AsyncSession, id: Any) -> Optional[User]:
    result = await db.execute(select(User).filter(User.id == id))
    first: Optional[User] = result.scalars().first()
    return first


async def get_users_by_ids(db: AsyncSession, *, user_ids: List[int]) -> Dict[int, User]:
    """Users keyed by id"""
    if not user_ids:
        return {}
    result = await db.execute(select(User).filter(User.id.in_(user_ids)))
    return {user.id: user for user in result.scalars().all()}


async def get_by_email(db: AsyncSession, *, email: str) -> Optional[User]:
    result = await db.execute(select(User).filter(User.email == email.lower()))
    first: Optional[User] = result.scalars().first()
    return first


async def count(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(User.id)))
    return int(result.scalar_one())


async def create(
    db: AsyncSession, *, obj_in: UserCreate, role: UserRole = UserRole.USER
) -> User:
    db_obj = User(
        email=obj_in.email.lower(),
        hashed_password=get_password_hash(obj_in.password),
        name=obj_in.name,
        role=role,
    )
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def authenticate(
    db: AsyncSession, *, email: str, password: str
) -> Optional[User]:
    user = await get_by_email(db, email=email)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None

    # Update last login
    await db.execute(
        sa_update(User)
        .where(User.id == user.id)
        .values(last_login=datetime.now(timezone.utc))
    )
    await db.commit()

    return user


def is_active(user: User) -> bool:
    return bool(user.is_active)


def is_admin(user: User) -> bool:
    """Check if user has admin privileges (admin or super_admin role)"""
    return user.role in [UserRole.ADMIN, UserRole.SUPER_ADMIN]


def has_role(user: User, required_role: UserRole) -> bool:
    """Check if user has the required role or higher privileges"""
    role_hierarchy = {UserRole.USER: 1, UserRole.ADMIN: 2, UserRole.SUPER_ADMIN: 3}

    user_level = role_hierarchy.get(user.role, 0)
    required_level = role_hierarchy.get(required_role, 0)

    return user_level >= required_level


async def ensure_superuser(db: AsyncSession, *, email: str, password: str) -> User:
    """Create the bootstrap SUPER_ADMIN account unless the email is taken"""
    user = await get_by_email(db, email=email)
    if user:
        return user
    db_obj = User(
        email=email.lower(),
        hashed_password=get_password_hash(password),
        name="Administrator",
        role=UserRole.SUPER_ADMIN,
    )
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj
