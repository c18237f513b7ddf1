"""
GraphQL schema: object types, root queries and mutations.

Resolvers are thin: they authenticate through the request context,
ask the authorization policy, and delegate all data access to the
service layer.  Nested relations resolve through the request's
dataloaders so a list of N parents costs one query per relation, not N.
"""
import logging

import strawberry
from graphql import GraphQLError
from starlette.concurrency import run_in_threadpool
from strawberry.extensions import MaskErrors
from strawberry.types import Info

from blogql import models
from blogql.auth import Action
from blogql.config import settings
from blogql.errors import BlogError, InvalidPassword, NoSuchUser, NotFound, ValidationError
from blogql.services import comment_service, post_service, user_service

logger = logging.getLogger(__name__)


def _parse_id(value: strawberry.ID, name: str = "id") -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Argument '{name}' must be a numeric ID, got {value!r}") from None


# ---------------------------------------------------------------------------
# Object types
# ---------------------------------------------------------------------------

@strawberry.type
class User:
    id: strawberry.ID
    email: str

    @classmethod
    def from_model(cls, user: models.User) -> "User":
        return cls(id=strawberry.ID(str(user.id)), email=user.email)

    @strawberry.field
    async def posts(self, info: Info) -> list["Post"]:
        rows = await info.context.loaders.posts_by_author.load(int(self.id))
        return [Post.from_model(post) for post in rows]

    @strawberry.field
    async def comments(self, info: Info) -> list["Comment"]:
        rows = await info.context.loaders.comments_by_author.load(int(self.id))
        return [Comment.from_model(comment) for comment in rows]


@strawberry.type
class Post:
    id: strawberry.ID
    title: str
    content: str
    author_id: strawberry.Private[int]

    @classmethod
    def from_model(cls, post: models.Post) -> "Post":
        return cls(
            id=strawberry.ID(str(post.id)),
            title=post.title,
            content=post.content,
            author_id=post.author_id,
        )

    @strawberry.field
    async def author(self, info: Info) -> User:
        user = await info.context.loaders.user_by_id.load(self.author_id)
        if user is None:
            raise NotFound(f"Author of post {self.id} not found")
        return User.from_model(user)

    @strawberry.field
    async def comments(self, info: Info) -> list["Comment"]:
        rows = await info.context.loaders.comments_by_post.load(int(self.id))
        return [Comment.from_model(comment) for comment in rows]


@strawberry.type
class Comment:
    id: strawberry.ID
    content: str
    author_id: strawberry.Private[int]
    post_id: strawberry.Private[int]

    @classmethod
    def from_model(cls, comment: models.Comment) -> "Comment":
        return cls(
            id=strawberry.ID(str(comment.id)),
            content=comment.content,
            author_id=comment.author_id,
            post_id=comment.post_id,
        )

    @strawberry.field
    async def author(self, info: Info) -> User:
        user = await info.context.loaders.user_by_id.load(self.author_id)
        if user is None:
            raise NotFound(f"Author of comment {self.id} not found")
        return User.from_model(user)

    @strawberry.field
    async def post(self, info: Info) -> Post:
        post = await info.context.loaders.post_by_id.load(self.post_id)
        if post is None:
            raise NotFound(f"Post of comment {self.id} not found")
        return Post.from_model(post)


# ---------------------------------------------------------------------------
# Root types
# ---------------------------------------------------------------------------

@strawberry.type
class Query:
    @strawberry.field
    async def users(self, info: Info) -> list[User]:
        rows = await info.context.run(user_service.get_users)
        return [User.from_model(user) for user in rows]

    @strawberry.field
    async def posts(self, info: Info) -> list[Post]:
        rows = await info.context.run(post_service.get_posts)
        return [Post.from_model(post) for post in rows]

    @strawberry.field
    async def comments(self, info: Info) -> list[Comment]:
        rows = await info.context.run(comment_service.get_comments)
        return [Comment.from_model(comment) for comment in rows]


@strawberry.type
class Mutation:
    @strawberry.mutation
    async def sign_up(self, info: Info, email: str, password: str) -> str:
        ctx = info.context
        password_hash = await run_in_threadpool(ctx.credentials.hash_password, password)
        user = await ctx.write(user_service.create_user, email, password_hash)
        logger.info("Signed up user %s", user.id)
        return ctx.credentials.issue_token(user.id)

    @strawberry.mutation
    async def login(self, info: Info, email: str, password: str) -> str:
        ctx = info.context
        user = await ctx.run(user_service.get_user_by_email, email)
        if user is None:
            logger.info("Failed login: no user with that email")
            raise NoSuchUser()
        valid = await run_in_threadpool(ctx.credentials.verify_password, password, user.password_hash)
        if not valid:
            logger.info("Failed login for user %s", user.id)
            raise InvalidPassword()
        logger.info("Logged in user %s", user.id)
        return ctx.credentials.issue_token(user.id)

    @strawberry.mutation
    async def create_post(self, info: Info, title: str, content: str) -> Post:
        ctx = info.context
        caller_id = ctx.policy.authorize(ctx.authenticate(), Action.CREATE_POST)
        post = await ctx.write(post_service.create_post, caller_id, title, content)
        return Post.from_model(post)

    @strawberry.mutation
    async def update_post(
        self,
        info: Info,
        id: strawberry.ID,
        title: str | None = None,
        content: str | None = None,
    ) -> Post:
        ctx = info.context
        caller_id = ctx.authenticate()
        post_id = _parse_id(id)
        existing = await ctx.run(post_service.get_post_or_raise, post_id)
        ctx.policy.authorize(caller_id, Action.UPDATE_POST, owner_id=existing.author_id)
        post = await ctx.write(post_service.update_post, post_id, title=title, content=content)
        return Post.from_model(post)

    @strawberry.mutation
    async def delete_post(self, info: Info, id: strawberry.ID) -> Post:
        ctx = info.context
        caller_id = ctx.authenticate()
        post_id = _parse_id(id)
        existing = await ctx.run(post_service.get_post_or_raise, post_id)
        ctx.policy.authorize(caller_id, Action.DELETE_POST, owner_id=existing.author_id)
        post = await ctx.write(post_service.delete_post, post_id)
        return Post.from_model(post)

    @strawberry.mutation
    async def add_comment(self, info: Info, post_id: strawberry.ID, content: str) -> Comment:
        ctx = info.context
        caller_id = ctx.policy.authorize(ctx.authenticate(), Action.ADD_COMMENT)
        comment = await ctx.write(
            comment_service.add_comment, caller_id, _parse_id(post_id, "postId"), content
        )
        return Comment.from_model(comment)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

def _is_unexpected(error: GraphQLError) -> bool:
    original = error.original_error
    return original is not None and not isinstance(original, BlogError)


class BlogSchema(strawberry.Schema):
    """Schema that reports domain errors quietly and everything else loudly."""

    def process_errors(self, errors, execution_context=None) -> None:
        unexpected = []
        for error in errors:
            if isinstance(error.original_error, BlogError):
                logger.info(
                    "%s at %s: %s",
                    error.original_error.code, error.path, error.message,
                )
            else:
                unexpected.append(error)
        if unexpected:
            super().process_errors(unexpected, execution_context)


def build_schema(debug: bool) -> BlogSchema:
    """Outside debug mode, unexpected errors reach the client as a generic message."""
    return BlogSchema(
        query=Query,
        mutation=Mutation,
        extensions=[] if debug else [MaskErrors(should_mask_error=_is_unexpected)],
    )


schema = build_schema(settings.DEBUG)
