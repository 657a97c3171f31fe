"""
graphgate - GraphQL gateway over composed schemas.

Composes a schema generated from declarative models with hand-written schema
sources and serves the result on a single endpoint.

Usage:
    from graphgate import create_app

    app = create_app()
"""

__version__ = "0.1.0"

from graphgate.app import create_app, serve, start
from graphgate.core.config import Settings, get_settings, load_settings
from graphgate.core.errors import (
    ConfigurationError,
    CorsRejected,
    DependencyUnavailableError,
    GatewayError,
    InvalidRequestError,
    InvalidSchemaError,
    ResolverError,
    SchemaConflictError,
)
from graphgate.graphql import (
    ComposedSchema,
    ExecutableSchema,
    RequestContext,
    SchemaSourceKind,
    build_context,
    compose,
)

__all__ = [
    "__version__",
    # Application
    "create_app",
    "start",
    "serve",
    # Configuration
    "Settings",
    "get_settings",
    "load_settings",
    # Errors
    "GatewayError",
    "ConfigurationError",
    "InvalidSchemaError",
    "SchemaConflictError",
    "CorsRejected",
    "DependencyUnavailableError",
    "InvalidRequestError",
    "ResolverError",
    # Schema
    "ExecutableSchema",
    "SchemaSourceKind",
    "ComposedSchema",
    "compose",
    "RequestContext",
    "build_context",
]
