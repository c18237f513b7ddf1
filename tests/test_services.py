"""
Direct service-layer tests: exercises the persistence gateway without
HTTP or GraphQL overhead, including the batch loaders that back the
dataloaders and the single-parent association helpers.
"""
import pytest
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.ext.asyncio import AsyncSession

from blogql.errors import NotFound, PersistenceError
from blogql.models import User
from blogql.services import comment_service, post_service, user_service


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _create_user(db: AsyncSession, email: str = "svc@example.com") -> User:
    return await user_service.create_user(db, email, "$2b$04$notarealhashbutnotchecked")


# ---------------------------------------------------------------------------
# user_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_users_empty(db_session: AsyncSession):
    assert await user_service.get_users(db_session) == []


@pytest.mark.asyncio
async def test_create_and_find_user(db_session: AsyncSession):
    user = await _create_user(db_session, "find@example.com")
    assert user.id is not None

    assert (await user_service.get_user(db_session, user.id)).email == "find@example.com"
    assert (await user_service.get_user_by_email(db_session, "find@example.com")).id == user.id
    assert await user_service.get_user_by_email(db_session, "other@example.com") is None
    assert await user_service.get_user(db_session, 12345) is None


@pytest.mark.asyncio
async def test_create_user_duplicate_email(db_session: AsyncSession):
    await _create_user(db_session, "same@example.com")
    await _create_user(db_session, "other@example.com")
    with pytest.raises(PersistenceError, match="already exists"):
        await _create_user(db_session, "same@example.com")

    # Only the failed insert is rolled back.
    assert [u.email for u in await user_service.get_users(db_session)] == [
        "same@example.com", "other@example.com",
    ]


@pytest.mark.asyncio
async def test_get_users_by_ids_preserves_key_order(db_session: AsyncSession):
    a = await _create_user(db_session, "a@example.com")
    b = await _create_user(db_session, "b@example.com")

    result = await user_service.get_users_by_ids(db_session, [b.id, 999, a.id, b.id])
    assert [u.email if u else None for u in result] == [
        "b@example.com", None, "a@example.com", "b@example.com",
    ]


@pytest.mark.asyncio
async def test_relations_are_never_lazy_loaded(db_session: AsyncSession):
    """Associations come from the service functions only."""
    user = await _create_user(db_session)
    post = await post_service.create_post(db_session, user.id, "Title", "Body")

    with pytest.raises(InvalidRequestError):
        user.posts
    with pytest.raises(InvalidRequestError):
        post.author


# ---------------------------------------------------------------------------
# post_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_post_and_author_of(db_session: AsyncSession):
    user = await _create_user(db_session)
    post = await post_service.create_post(db_session, user.id, "Title", "Body")

    assert post.author_id == user.id
    author = await user_service.get_author_of(db_session, post)
    assert author.email == "svc@example.com"


@pytest.mark.asyncio
async def test_create_post_unknown_author(db_session: AsyncSession):
    with pytest.raises(NotFound):
        await post_service.create_post(db_session, 777, "Title", "Body")
    assert await post_service.get_posts(db_session) == []


@pytest.mark.asyncio
async def test_update_post_only_given_fields(db_session: AsyncSession):
    user = await _create_user(db_session)
    post = await post_service.create_post(db_session, user.id, "Title", "Body")

    updated = await post_service.update_post(db_session, post.id, content="New body")
    assert updated.title == "Title"
    assert updated.content == "New body"
    assert updated.author_id == user.id
    assert updated.updated_at is not None


@pytest.mark.asyncio
async def test_update_and_delete_missing_post(db_session: AsyncSession):
    with pytest.raises(NotFound):
        await post_service.update_post(db_session, 1, title="x")
    with pytest.raises(NotFound):
        await post_service.delete_post(db_session, 1)


@pytest.mark.asyncio
async def test_delete_post(db_session: AsyncSession):
    user = await _create_user(db_session)
    post = await post_service.create_post(db_session, user.id, "Gone", "Soon")
    await comment_service.add_comment(db_session, user.id, post.id, "bye")

    deleted = await post_service.delete_post(db_session, post.id)
    assert deleted.title == "Gone"
    assert await post_service.get_post(db_session, post.id) is None
    assert await comment_service.get_comments(db_session) == []


@pytest.mark.asyncio
async def test_posts_by_authors_grouped(db_session: AsyncSession):
    a = await _create_user(db_session, "a@example.com")
    b = await _create_user(db_session, "b@example.com")
    c = await _create_user(db_session, "c@example.com")
    for author, title in ((a, "a1"), (b, "b1"), (a, "a2")):
        await post_service.create_post(db_session, author.id, title, "...")

    grouped = await post_service.get_posts_by_authors(db_session, [a.id, b.id, c.id])
    assert [[p.title for p in posts] for posts in grouped] == [["a1", "a2"], ["b1"], []]

    assert [p.title for p in await post_service.get_posts_of(db_session, a)] == ["a1", "a2"]


@pytest.mark.asyncio
async def test_get_posts_by_ids(db_session: AsyncSession):
    user = await _create_user(db_session)
    p1 = await post_service.create_post(db_session, user.id, "one", "...")
    p2 = await post_service.create_post(db_session, user.id, "two", "...")

    result = await post_service.get_posts_by_ids(db_session, [p2.id, 555, p1.id])
    assert [p.title if p else None for p in result] == ["two", None, "one"]


# ---------------------------------------------------------------------------
# comment_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_comment_missing_post(db_session: AsyncSession):
    user = await _create_user(db_session)
    with pytest.raises(NotFound):
        await comment_service.add_comment(db_session, user.id, 404, "hello?")
    assert await comment_service.get_comments(db_session) == []


@pytest.mark.asyncio
async def test_add_comment_missing_author(db_session: AsyncSession):
    user = await _create_user(db_session)
    post = await post_service.create_post(db_session, user.id, "t", "c")
    with pytest.raises(NotFound):
        await comment_service.add_comment(db_session, 9999, post.id, "ghost")


@pytest.mark.asyncio
async def test_comments_of_user_and_post(db_session: AsyncSession):
    alice = await _create_user(db_session, "alice@example.com")
    bob = await _create_user(db_session, "bob@example.com")
    first = await post_service.create_post(db_session, alice.id, "first", "...")
    second = await post_service.create_post(db_session, alice.id, "second", "...")

    c1 = await comment_service.add_comment(db_session, bob.id, first.id, "b on first")
    await comment_service.add_comment(db_session, alice.id, first.id, "a on first")
    await comment_service.add_comment(db_session, bob.id, second.id, "b on second")

    assert (await comment_service.get_comment(db_session, c1.id)).content == "b on first"
    assert [c.content for c in await comment_service.get_comments_of(db_session, bob)] == [
        "b on first", "b on second",
    ]
    assert [c.content for c in await comment_service.get_comments_of(db_session, first)] == [
        "b on first", "a on first",
    ]
    by_posts = await comment_service.get_comments_by_posts(db_session, [second.id, first.id])
    assert [len(group) for group in by_posts] == [1, 2]

    author = await user_service.get_author_of(db_session, c1)
    assert author.email == "bob@example.com"
