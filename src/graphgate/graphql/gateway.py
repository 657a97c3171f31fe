"""
GraphQL Gateway for graphgate.

Serves a composed schema through strawberry's FastAPI router with
per-request context, environment-gated introspection and structured error
responses.
"""

import traceback
from typing import Any, Dict, List, Optional

from fastapi import Depends
from graphql import GraphQLError
from graphql.validation import NoSchemaIntrospectionCustomRule
from starlette.requests import Request
from strawberry import Schema
from strawberry.extensions import AddValidationRules
from strawberry.fastapi import GraphQLRouter
from strawberry.http import GraphQLHTTPResponse, process_result
from strawberry.types import ExecutionContext, ExecutionResult

from graphgate.core.config import Settings
from graphgate.core.errors import GatewayError
from graphgate.core.logging import get_logger
from graphgate.db.connection import MongoConnection
from graphgate.graphql.composer import ComposedSchema
from graphgate.graphql.context import make_context_getter

logger = get_logger(__name__)

MASKED_ERROR_MESSAGE = "Internal server error"
VALIDATION_ERROR_CODE = "GRAPHQL_VALIDATION_FAILED"


class IntrospectionDisabled(AddValidationRules):
    """Validation rule set rejecting introspection queries."""

    def __init__(self, **kwargs: Any):
        super().__init__([NoSchemaIntrospectionCustomRule])


class GatewaySchema(Schema):
    """Strawberry schema that reports every execution error to the gateway log."""

    def process_errors(
        self,
        errors: List[GraphQLError],
        execution_context: Optional[ExecutionContext] = None,
    ) -> None:
        operation = execution_context.operation_name if execution_context else None
        for error in errors:
            original = error.original_error
            if original is None:
                logger.warning("GraphQL request rejected", error=error.message, operation=operation)
            elif isinstance(original, GatewayError):
                logger.warning(
                    "GraphQL resolver failed",
                    error=error.message,
                    code=original.code,
                    path=error.path,
                    operation=operation,
                )
            else:
                logger.error(
                    "GraphQL resolver raised",
                    error=error.message,
                    path=error.path,
                    operation=operation,
                    exc_info=original,
                )


class GatewayRouter(GraphQLRouter):
    """GraphQL router that shapes errors into the gateway's envelope."""

    def __init__(self, schema: Schema, *, mask_errors: bool, include_stacktrace: bool, **kwargs: Any):
        super().__init__(schema, **kwargs)
        self.mask_errors = mask_errors
        self.include_stacktrace = include_stacktrace

    async def process_result(self, request: Request, result: ExecutionResult) -> GraphQLHTTPResponse:
        response = process_result(result)
        if result.errors:
            response["errors"] = [self.format_error(error) for error in result.errors]
        return response

    def format_error(self, error: GraphQLError) -> Dict[str, Any]:
        """
        Format one error for the client.

        Every error gets ``extensions.code``. Unexpected errors lose their
        message when masking is on; stack traces are only included while
        introspection is enabled.
        """
        formatted = dict(error.formatted)
        extensions = dict(formatted.get("extensions") or {})
        original = error.original_error

        if isinstance(original, GatewayError):
            extensions["code"] = original.code
        elif original is None:
            extensions.setdefault("code", VALIDATION_ERROR_CODE)
        else:
            extensions["code"] = "INTERNAL_SERVER_ERROR"
            if self.mask_errors:
                formatted["message"] = MASKED_ERROR_MESSAGE

        if self.include_stacktrace and original is not None:
            extensions["stacktrace"] = "".join(
                traceback.format_exception(type(original), original, original.__traceback__)
            ).splitlines()

        formatted["extensions"] = extensions
        return formatted


class GraphQLGateway:
    """
    Serves a composed schema over HTTP.

    Introspection, the GraphiQL explorer and stack traces in responses are
    decided once here from the settings and never re-evaluated per request.
    """

    def __init__(self, composed: ComposedSchema, settings: Settings, connection: MongoConnection):
        """Initialize the gateway with its schema, settings and shared connection."""
        self.composed = composed
        self.settings = settings
        self.connection = connection
        self.logger = get_logger(__name__)

        self.introspection_enabled = settings.introspection_enabled
        self.schema = composed.executable(GatewaySchema, self._extensions())
        self._router: Optional[GatewayRouter] = None

        self.logger.info(
            "GraphQL gateway configured",
            path=settings.graphql_path,
            environment=settings.environment,
            introspection=self.introspection_enabled,
            mask_errors=settings.should_mask_errors,
        )

    def _extensions(self) -> List[Any]:
        if self.introspection_enabled:
            return []
        return [IntrospectionDisabled]

    async def require_database(self) -> None:
        """Router dependency: make sure the shared connection is up."""
        await self.connection.ensure_connected()

    def get_router(self) -> GatewayRouter:
        """Get FastAPI GraphQL router."""
        if self._router is None:
            self._router = GatewayRouter(
                self.schema,
                path=self.settings.graphql_path,
                graphql_ide=self.settings.graphql_ide,
                context_getter=make_context_getter(self.settings, self.connection),
                dependencies=[Depends(self.require_database)],
                mask_errors=self.settings.should_mask_errors,
                include_stacktrace=self.introspection_enabled,
            )
        return self._router

    async def get_health_info(self) -> Dict[str, Any]:
        """Get GraphQL gateway health information."""
        database = await self.connection.health_check()
        return {
            "status": "healthy" if database["status"] == "healthy" else "degraded",
            "version": self.settings.app_version,
            "environment": self.settings.environment,
            "components": {
                "database": database,
                "schema": {
                    "sources": list(self.composed.sources),
                    "query_fields": list(self.composed.query_fields),
                    "mutation_fields": list(self.composed.mutation_fields),
                },
            },
            "endpoints": {
                "graphql": self.settings.graphql_path,
                "explorer": self.settings.graphql_path if self.settings.graphql_ide else None,
            },
        }
