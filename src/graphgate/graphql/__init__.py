"""
GraphQL layer for graphgate.

Schema sources, composition, per-request context and the gateway that
serves the composed schema.
"""

from .composer import ComposedSchema, compose
from .context import RequestContext, RequestDescriptor, build_context
from .gateway import GraphQLGateway
from .restaurants import build_restaurants_schema
from .schema_generator import SchemaGenerator, build_generated_schema
from .sources import ExecutableSchema, SchemaSourceKind

__all__ = [
    "ComposedSchema",
    "compose",
    "RequestContext",
    "RequestDescriptor",
    "build_context",
    "GraphQLGateway",
    "build_restaurants_schema",
    "SchemaGenerator",
    "build_generated_schema",
    "ExecutableSchema",
    "SchemaSourceKind",
]
