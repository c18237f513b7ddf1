"""
Comment service: append-only comment creation.

Comments cannot be edited or deleted through the API; they disappear
only together with their parent post.
"""
from collections import defaultdict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blogql.errors import NotFound
from blogql.models import Comment, Post, User
from blogql.services import atomic_write


async def get_comments(db: AsyncSession) -> list[Comment]:
    result = await db.execute(select(Comment).order_by(Comment.id))
    return list(result.scalars().all())


async def get_comment(db: AsyncSession, comment_id: int) -> Comment | None:
    result = await db.execute(select(Comment).where(Comment.id == comment_id))
    return result.scalar_one_or_none()


async def add_comment(db: AsyncSession, author_id: int, post_id: int, content: str) -> Comment:
    """
    Append a comment by *author_id* to the post *post_id*.

    Raises ``NotFound`` when the post (or the author) does not exist;
    nothing is written in that case.
    """
    if await db.get(Post, post_id) is None:
        raise NotFound(f"Post {post_id} not found")
    if await db.get(User, author_id) is None:
        raise NotFound(f"User {author_id} not found")

    comment = Comment(content=content, author_id=author_id, post_id=post_id)
    async with atomic_write(db):
        db.add(comment)
    return comment


async def _group_by(db: AsyncSession, column, keys: list[int]) -> list[list[Comment]]:
    result = await db.execute(
        select(Comment).where(column.in_(keys)).order_by(Comment.id)
    )
    grouped: dict[int, list[Comment]] = defaultdict(list)
    for comment in result.scalars().all():
        grouped[getattr(comment, column.key)].append(comment)
    return [grouped.get(key, []) for key in keys]


async def get_comments_by_authors(db: AsyncSession, author_ids: list[int]) -> list[list[Comment]]:
    return await _group_by(db, Comment.author_id, author_ids)


async def get_comments_by_posts(db: AsyncSession, post_ids: list[int]) -> list[list[Comment]]:
    return await _group_by(db, Comment.post_id, post_ids)


async def get_comments_of(db: AsyncSession, parent: User | Post) -> list[Comment]:
    """Comments written by a user, or comments left on a post."""
    if isinstance(parent, User):
        return (await get_comments_by_authors(db, [parent.id]))[0]
    return (await get_comments_by_posts(db, [parent.id]))[0]
