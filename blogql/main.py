import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from strawberry.fastapi import GraphQLRouter

from blogql import __version__
from blogql.auth import AuthorizationPolicy
from blogql.config import settings
from blogql.context import get_context
from blogql.database import engine
from blogql.middleware import TimingMiddleware
from blogql.schema import schema
from blogql.security import Credentials

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(
        "GraphQL endpoint ready at http://%s:%s%s",
        settings.HOST, settings.PORT, settings.GRAPHQL_PATH,
    )
    yield
    # Shutdown
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Blog GraphQL API",
        description="Users, posts and comments behind a single GraphQL endpoint",
        version=__version__,
        lifespan=lifespan,
    )

    # Built once per process; resolvers reach them through the request context.
    app.state.credentials = Credentials.from_settings(settings)
    app.state.policy = AuthorizationPolicy(require_authorship=settings.REQUIRE_POST_AUTHORSHIP)

    # Middleware
    app.add_middleware(TimingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    graphql_app = GraphQLRouter(
        schema,
        graphql_ide="graphiql" if settings.DEBUG else None,
        context_getter=get_context,
    )
    app.include_router(graphql_app, prefix=settings.GRAPHQL_PATH)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()


def run() -> None:
    """Console entry point: configure logging and serve the API."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "blogql.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
