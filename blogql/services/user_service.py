"""
User service: lookups and sign-up insert for the User record.

Users are created only through sign-up and are never updated or
deleted.  The password hash is stored here but is never part of any
value handed to the API layer beyond the ORM instance itself; the
GraphQL ``User`` type exposes only ``id`` and ``email``.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blogql.models import Comment, Post, User
from blogql.services import atomic_write


async def get_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.id))
    return list(result.scalars().all())


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def create_user(db: AsyncSession, email: str, password_hash: str) -> User:
    """
    Insert a new user and return it.

    Email uniqueness is enforced by the database; a duplicate surfaces
    as ``PersistenceError``.
    """
    user = User(email=email, password_hash=password_hash)
    async with atomic_write(db, "A user with this email already exists"):
        db.add(user)
    return user


async def get_users_by_ids(db: AsyncSession, user_ids: list[int]) -> list[User | None]:
    """Return the users for *user_ids* in key order (``None`` when missing)."""
    result = await db.execute(select(User).where(User.id.in_(user_ids)))
    by_id = {user.id: user for user in result.scalars().all()}
    return [by_id.get(user_id) for user_id in user_ids]


async def get_author_of(db: AsyncSession, record: Post | Comment) -> User | None:
    return await get_user(db, record.author_id)
