"""
Per-request GraphQL context and dataloaders.

A fresh ``BlogContext`` is built for every HTTP request by
``get_context`` (a FastAPI dependency, so ``get_db`` overrides apply).
It owns the request's database session, the dataloaders and the
on-demand caller resolution.
"""
import asyncio
from functools import partial

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from strawberry.dataloader import DataLoader
from strawberry.fastapi import BaseContext

from blogql.auth import AuthorizationPolicy, resolve_caller
from blogql.database import get_db
from blogql.errors import Unauthenticated
from blogql.security import Credentials
from blogql.services import comment_service, post_service, user_service


class Loaders:
    """
    Request-scoped dataloaders.

    Loads of one kind issued while resolving sibling fields are batched
    into a single ``IN`` query, and repeated keys are served from the
    loader's cache until the next write replaces the loaders.
    """

    def __init__(self, context: "BlogContext") -> None:
        self.user_by_id = DataLoader(load_fn=partial(context.run, user_service.get_users_by_ids))
        self.post_by_id = DataLoader(load_fn=partial(context.run, post_service.get_posts_by_ids))
        self.posts_by_author = DataLoader(
            load_fn=partial(context.run, post_service.get_posts_by_authors)
        )
        self.comments_by_author = DataLoader(
            load_fn=partial(context.run, comment_service.get_comments_by_authors)
        )
        self.comments_by_post = DataLoader(
            load_fn=partial(context.run, comment_service.get_comments_by_posts)
        )


class BlogContext(BaseContext):
    def __init__(
        self,
        session: AsyncSession,
        credentials: Credentials,
        policy: AuthorizationPolicy,
    ) -> None:
        super().__init__()
        self.session = session
        self.credentials = credentials
        self.policy = policy
        # Sibling resolvers run concurrently; an AsyncSession must not.
        self._session_lock = asyncio.Lock()
        self.loaders = Loaders(self)

    async def run(self, fn, *args, **kwargs):
        """Call the service function *fn* with the request's session."""
        async with self._session_lock:
            return await fn(self.session, *args, **kwargs)

    async def write(self, fn, *args, **kwargs):
        """
        Call a service function that changes data, then start over with
        empty dataloaders so later fields of the document see the write.
        """
        result = await self.run(fn, *args, **kwargs)
        self.loaders = Loaders(self)
        return result

    def caller_id(self) -> int | None:
        return resolve_caller(self.request, self.credentials)

    def authenticate(self) -> int:
        caller_id = self.caller_id()
        if caller_id is None:
            raise Unauthenticated()
        return caller_id


async def get_context(request: Request, db: AsyncSession = Depends(get_db)) -> BlogContext:
    return BlogContext(
        session=db,
        credentials=request.app.state.credentials,
        policy=request.app.state.policy,
    )
