"""
graphgate Application Entry Point.

Builds the FastAPI application that serves the composed GraphQL schema:

- Composes the generated and hand-written schema sources once at startup
- Applies the origin guard and CORS middleware on the GraphQL path
- Shares one lazily established database connection across requests
- Converts gateway errors into the standard ``{data, errors}`` envelope

A schema conflict or a missing ``MONGO_URI`` raises here, so the server
never binds with an invalid configuration.
"""

from contextlib import asynccontextmanager
from typing import Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from graphgate.api.middleware import CorsPolicy, OriginGuardMiddleware, RequestLoggingMiddleware
from graphgate.api.routes import health_router
from graphgate.core.config import Settings, get_settings
from graphgate.core.errors import GatewayError, error_response
from graphgate.core.logging import get_logger, setup_logging
from graphgate.db.connection import MongoConnection
from graphgate.graphql.composer import ComposedSchema, compose
from graphgate.graphql.gateway import GraphQLGateway
from graphgate.graphql.restaurants import build_restaurants_schema
from graphgate.graphql.schema_generator import build_generated_schema
from graphgate.graphql.sources import ExecutableSchema

# Initialize logger for this module
logger = get_logger(__name__)


def default_sources() -> Sequence[ExecutableSchema]:
    """The generated model schema followed by the hand-written one."""
    return [build_generated_schema(), build_restaurants_schema()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle manager.

    Tries to warm up the shared connection on startup; a database that is
    down at boot is retried lazily by the first request that needs it.
    Closes the connection on shutdown.
    """
    gateway: GraphQLGateway = app.state.gateway
    logger.info("Starting graphgate", environment=gateway.settings.environment)

    try:
        await gateway.connection.ensure_connected()
    except GatewayError as e:
        logger.warning("Database not reachable at startup, will retry on demand", error=str(e))

    yield

    logger.info("Shutting down graphgate")
    try:
        await gateway.connection.close()
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


async def gateway_error_handler(request: Request, exc: GatewayError):
    """Render gateway errors raised outside GraphQL execution."""
    logger.warning("Request failed", code=exc.code, error=exc.message, path=request.url.path)
    return error_response(exc)


def start(composed: ComposedSchema, settings: Settings, connection: MongoConnection) -> FastAPI:
    """
    Create the application serving an already composed schema.

    Args:
        composed: Schema shared by every request
        settings: Process-wide configuration
        connection: Shared database connection

    Returns:
        FastAPI: Application ready to be run by an ASGI server
    """
    gateway = GraphQLGateway(composed, settings, connection)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="GraphQL gateway over composed schemas",
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.gateway = gateway

    app.add_exception_handler(GatewayError, gateway_error_handler)

    # Middleware added last runs first: logging, then origin guard, then CORS headers
    policy = CorsPolicy.from_origins(settings.cors_origins, settings.cors_allow_credentials)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(policy.allow_origins),
        allow_credentials=policy.allow_credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(OriginGuardMiddleware, policy=policy, path=settings.graphql_path)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health_router)
    app.include_router(gateway.get_router())

    return app


def create_app(
    settings: Optional[Settings] = None,
    *,
    sources: Optional[Sequence[ExecutableSchema]] = None,
    connection: Optional[MongoConnection] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Raises:
        ConfigurationError: If ``MONGO_URI`` is not set
        SchemaConflictError: If the schema sources cannot be composed
    """
    settings = settings or get_settings()
    setup_logging(settings)

    composed = compose(default_sources() if sources is None else sources)
    connection = connection or MongoConnection.from_settings(settings)
    return start(composed, settings, connection)


def serve(settings: Optional[Settings] = None) -> None:
    """Run the gateway with uvicorn."""
    import uvicorn

    settings = settings or get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.api_host,
        port=settings.api_port,
        proxy_headers=settings.trust_proxy,
        log_config=None,
    )
