# Services package: the persistence gateway.
#
# Each module exposes a focused set of async functions that encapsulate
# database access for a single record kind:
#
#   user_service    : User lookups, sign-up insert, author loading
#   post_service    : CRUD for Post, posts-of-user loading
#   comment_service : append-only Comment creation, comment loading
#
# All service functions accept an AsyncSession as their first argument
# so that the request (``get_db``) owns the transaction boundary.  Writes
# go through ``atomic_write`` and are flushed, never committed.  The
# ``*_by_*`` functions take a list of keys and return one result per
# key, in key order; they back the GraphQL dataloaders.
import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogql.errors import PersistenceError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic_write(db: AsyncSession, conflict_message: str | None = None):
    """
    Run the writes made inside the block under a SAVEPOINT and flush
    them on exit, translating backend failures into ``PersistenceError``.

    Only the savepoint is rolled back on failure: earlier writes in the
    request's transaction (e.g. a sibling mutation) survive and are
    committed by ``get_db``.
    """
    try:
        async with db.begin_nested():
            yield
    except IntegrityError as exc:
        logger.info("Constraint violation: %s", exc.orig)
        raise PersistenceError(conflict_message or "Constraint violation") from exc
    except SQLAlchemyError as exc:
        logger.error("Database write failed: %s", exc)
        raise PersistenceError() from exc
