"""
Exceptions raised by the gateway and the error envelope they map to.
"""

from typing import Any, Dict, Iterable, Optional

from starlette.responses import JSONResponse


class GatewayError(Exception):
    """Base exception for all gateway errors."""

    code = "INTERNAL_SERVER_ERROR"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_error(self) -> Dict[str, Any]:
        """Render as a GraphQL-style error entry."""
        return {"message": self.message, "extensions": {"code": self.code}}


class ConfigurationError(GatewayError):
    """Raised at startup when required configuration is missing or invalid."""

    code = "CONFIGURATION_ERROR"


class InvalidSchemaError(GatewayError):
    """Raised when a schema source cannot be built on its own."""

    code = "INVALID_SCHEMA"

    def __init__(self, source: str, reason: str):
        self.source = source
        super().__init__(f"Schema source '{source}' is invalid: {reason}")


class SchemaConflictError(GatewayError):
    """Raised when two schema sources declare incompatible types."""

    code = "SCHEMA_CONFLICT"

    def __init__(self, type_name: str, sources: Iterable[str], detail: Optional[str] = None):
        self.type_name = type_name
        self.sources = tuple(sources)
        message = f"Type '{type_name}' conflicts between sources {', '.join(self.sources)}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CorsRejected(GatewayError):
    """Raised when a request comes from an origin outside the allow-list."""

    code = "CORS_REJECTED"
    status_code = 403

    def __init__(self, origin: str):
        self.origin = origin
        super().__init__(f"Origin '{origin}' is not allowed")


class DependencyUnavailableError(GatewayError):
    """Raised when a backing service cannot be reached in time."""

    code = "DEPENDENCY_UNAVAILABLE"
    status_code = 503

    def __init__(self, dependency: str, reason: Optional[str] = None):
        self.dependency = dependency
        self.reason = reason
        super().__init__(f"{dependency} is unavailable")


class InvalidRequestError(GatewayError):
    """Raised when a request carries malformed required data."""

    code = "INVALID_REQUEST"
    status_code = 400


class ResolverError(GatewayError):
    """Raised by resolvers when a field cannot be produced."""

    code = "RESOLVER_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


def error_response(exc: GatewayError) -> JSONResponse:
    """Wrap a gateway error in the standard ``{data, errors}`` envelope."""
    return JSONResponse(
        {"data": None, "errors": [exc.to_error()]},
        status_code=exc.status_code,
    )
