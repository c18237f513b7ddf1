from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from blogql.config import settings
from blogql.middleware import install_query_counter


def configure_sqlite(engine: AsyncEngine) -> None:
    """
    Make SQLite behave like the production backend.

    - Foreign keys are enforced (SQLite ignores ``REFERENCES`` and
      ``ON DELETE CASCADE`` unless the pragma is set per connection).
    - Transactions are begun by SQLAlchemy rather than by the driver, so
      ``Session.begin_nested()`` savepoints nest inside the request
      transaction instead of starting (and committing) their own.

    Other backends are left untouched.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        # Straight to the driver so the statement is not counted as a query.
        cursor = conn.connection.dbapi_connection.cursor()
        cursor.execute("BEGIN")
        cursor.close()


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

install_query_counter(engine)
configure_sqlite(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """
    One session and one transaction per HTTP request.

    Every GraphQL field resolved for the request shares this session;
    the transaction commits once the response has been produced.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
