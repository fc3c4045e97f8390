import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import create_access_token, hash_password, verify_password
from app.models.user import User, UserCreate, UserPublic

logger = logging.getLogger(__name__)


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def create_user(session: AsyncSession, data: UserCreate) -> User:
    user = User(
        email=data.email,
        full_name=data.full_name,
        hashed_password=hash_password(data.password),
        is_admin=data.is_admin,
    )
    session.add(user)
    await session.flush()
    await session.refresh(user)
    return user


def user_to_public(user: User) -> UserPublic:
    return UserPublic(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        is_admin=user.is_admin,
    )


def make_access_token(user_id: int) -> tuple[str, int]:
    access = create_access_token(user_id)
    expires_in = settings.access_token_expire_minutes * 60
    return access, expires_in


async def login_user(
    session: AsyncSession, email: str, password: str
) -> tuple[User, str, int] | None:
    user = await get_user_by_email(session, email)
    if not user or not verify_password(password, user.hashed_password):
        return None
    access, expires_in = make_access_token(user.id)
    return user, access, expires_in


async def ensure_admin_user(session: AsyncSession) -> User | None:
    """Create the bootstrap admin from ADMIN_EMAIL/ADMIN_PASSWORD if missing. Commits."""
    if not settings.admin_email or not settings.admin_password:
        return None
    user = await get_user_by_email(session, settings.admin_email)
    if user:
        if not user.is_admin:
            user.is_admin = True
            session.add(user)
            await session.commit()
        return user
    user = await create_user(
        session,
        UserCreate(email=settings.admin_email, password=settings.admin_password, is_admin=True),
    )
    await session.commit()
    logger.info("Bootstrap admin %s created", settings.admin_email)
    return user
