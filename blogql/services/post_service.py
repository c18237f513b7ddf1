"""
Post service: CRUD for the Post record.

Posts are written by any authenticated caller; whether the caller must
also be the author is decided by the authorization policy before these
functions are reached, never here.
"""
from collections import defaultdict

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from blogql.errors import NotFound
from blogql.models import Comment, Post, User
from blogql.services import atomic_write


async def get_posts(db: AsyncSession) -> list[Post]:
    result = await db.execute(select(Post).order_by(Post.id))
    return list(result.scalars().all())


async def get_post(db: AsyncSession, post_id: int) -> Post | None:
    result = await db.execute(select(Post).where(Post.id == post_id))
    return result.scalar_one_or_none()


async def get_post_or_raise(db: AsyncSession, post_id: int) -> Post:
    post = await get_post(db, post_id)
    if post is None:
        raise NotFound(f"Post {post_id} not found")
    return post


async def create_post(db: AsyncSession, author_id: int, title: str, content: str) -> Post:
    """
    Create a post owned by *author_id*.

    Raises ``NotFound`` when the author does not exist (e.g. a valid
    token outliving its user's row).
    """
    if await db.get(User, author_id) is None:
        raise NotFound(f"User {author_id} not found")

    post = Post(title=title, content=content, author_id=author_id)
    async with atomic_write(db):
        db.add(post)
    return post


async def update_post(
    db: AsyncSession,
    post_id: int,
    title: str | None = None,
    content: str | None = None,
) -> Post:
    """
    Partially update a post.  Only arguments that are not ``None`` are
    written; the author never changes.
    """
    post = await get_post_or_raise(db, post_id)
    async with atomic_write(db):
        if title is not None:
            post.title = title
        if content is not None:
            post.content = content
    return post


async def delete_post(db: AsyncSession, post_id: int) -> Post:
    """
    Delete a post together with its comments and return the deleted
    instance (its loaded attributes stay readable).
    """
    post = await get_post_or_raise(db, post_id)
    # Explicit so backends that do not enforce ON DELETE CASCADE
    # (SQLite without PRAGMA foreign_keys) never keep orphans.
    async with atomic_write(db):
        await db.execute(delete(Comment).where(Comment.post_id == post_id))
        await db.delete(post)
    return post


async def get_posts_by_ids(db: AsyncSession, post_ids: list[int]) -> list[Post | None]:
    result = await db.execute(select(Post).where(Post.id.in_(post_ids)))
    by_id = {post.id: post for post in result.scalars().all()}
    return [by_id.get(post_id) for post_id in post_ids]


async def get_posts_by_authors(db: AsyncSession, author_ids: list[int]) -> list[list[Post]]:
    """One query for the posts of every author in *author_ids*, grouped in key order."""
    result = await db.execute(
        select(Post).where(Post.author_id.in_(author_ids)).order_by(Post.id)
    )
    grouped: dict[int, list[Post]] = defaultdict(list)
    for post in result.scalars().all():
        grouped[post.author_id].append(post)
    return [grouped.get(author_id, []) for author_id in author_ids]


async def get_posts_of(db: AsyncSession, user: User) -> list[Post]:
    return (await get_posts_by_authors(db, [user.id]))[0]
