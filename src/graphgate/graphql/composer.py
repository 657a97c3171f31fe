"""
Schema composition.

Merges several executable schema sources into one schema. Root ``Query`` and
``Mutation`` fields are unioned; every other named type must either be
declared by a single source or have the same shape everywhere it appears.
When a type is declared more than once, the first source's declaration
serves every source.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Type

import strawberry
from graphql import (
    GraphQLEnumType,
    GraphQLInputObjectType,
    GraphQLInterfaceType,
    GraphQLNamedType,
    GraphQLObjectType,
    GraphQLUnionType,
    specified_scalar_types,
)
from strawberry import Schema
from strawberry.schema.config import StrawberryConfig
from strawberry.schema.schema_converter import GraphQLCoreConverter
from strawberry.tools import merge_types

from graphgate.core.errors import InvalidSchemaError, SchemaConflictError
from graphgate.core.logging import get_logger, log_performance
from graphgate.graphql.sources import ExecutableSchema

logger = get_logger(__name__)

COMPOSED_SOURCE_NAME = "composed"


def composed_config() -> StrawberryConfig:
    # Same-named classes are checked by compose() and resolve to the first declaration
    return StrawberryConfig(_unsafe_disable_same_type_validation=True)


@dataclass(frozen=True)
class ComposedSchema:
    """
    The union of one or more schema sources.

    Built once at startup and shared read-only by every request.
    """
    sources: Tuple[str, ...]
    query: type
    mutation: Optional[type]
    types: Tuple[type, ...]
    schema: Schema
    root_fields: Mapping[str, Mapping[str, str]] = field(default_factory=dict)

    @property
    def query_fields(self) -> Tuple[str, ...]:
        return tuple(self.root_fields.get("Query", {}))

    @property
    def mutation_fields(self) -> Tuple[str, ...]:
        return tuple(self.root_fields.get("Mutation", {}))

    def executable(
        self,
        schema_class: Type[Schema] = Schema,
        extensions: Iterable[Any] = (),
    ) -> Schema:
        """Build a serving schema with the given class and extensions."""
        return schema_class(
            query=self.query,
            mutation=self.mutation,
            types=list(self.types),
            extensions=list(extensions),
            config=composed_config(),
        )


def type_shape(graphql_type: GraphQLNamedType) -> Tuple:
    """
    Describe a named type by kind and members, ignoring descriptions.

    Two declarations of the same type name are compatible when their shapes
    are equal.
    """
    kind = type(graphql_type).__name__

    if isinstance(graphql_type, (GraphQLObjectType, GraphQLInterfaceType)):
        fields = tuple(sorted(
            (
                name,
                str(graphql_field.type),
                tuple(sorted((arg_name, str(arg.type)) for arg_name, arg in graphql_field.args.items())),
            )
            for name, graphql_field in graphql_type.fields.items()
        ))
        interfaces = tuple(sorted(i.name for i in graphql_type.interfaces))
        return (kind, fields, interfaces)

    if isinstance(graphql_type, GraphQLInputObjectType):
        fields = tuple(sorted(
            (name, str(input_field.type)) for name, input_field in graphql_type.fields.items()
        ))
        return (kind, fields)

    if isinstance(graphql_type, GraphQLEnumType):
        return (kind, tuple(sorted(graphql_type.values)))

    if isinstance(graphql_type, GraphQLUnionType):
        return (kind, tuple(sorted(t.name for t in graphql_type.types)))

    return (kind,)


def type_binding(graphql_type: GraphQLNamedType) -> Any:
    """
    Describe how a named type maps onto Python objects.

    Object and input types bind by attribute name, enums by their class. Two
    declarations with equal shapes must also bind the same way, since values
    produced for one are served through the other.
    """
    definition = (graphql_type.extensions or {}).get(GraphQLCoreConverter.DEFINITION_BACKREF)
    if definition is None:
        return None

    wrapped_cls = getattr(definition, "wrapped_cls", None)
    if wrapped_cls is not None:
        return wrapped_cls

    return tuple(sorted(f.python_name for f in getattr(definition, "fields", None) or ()))


@log_performance("schema composition")
def compose(sources: Sequence[ExecutableSchema]) -> ComposedSchema:
    """
    Merge schema sources into a single schema.

    Args:
        sources: Ordered schema sources; each must be valid on its own

    Returns:
        The composed schema

    Raises:
        ValueError: If no sources are given or two sources share a name
        InvalidSchemaError: If a source is not valid on its own
        SchemaConflictError: If two sources declare the same type with
            different shapes or the same root field
    """
    if not sources:
        raise ValueError("compose() needs at least one schema source")

    names = [source.name for source in sources]
    if len(set(names)) != len(names):
        raise ValueError(f"Schema source names must be unique, got {names}")

    declared: Dict[str, Tuple[str, Tuple, Any]] = {}
    root_fields: Dict[str, Dict[str, str]] = {"Query": {}, "Mutation": {}}

    for source in sources:
        graphql_schema = source.schema._schema

        roots = (
            ("Query", graphql_schema.query_type),
            ("Mutation", graphql_schema.mutation_type),
        )
        root_names = {
            root.name for root in (
                graphql_schema.query_type,
                graphql_schema.mutation_type,
                graphql_schema.subscription_type,
            ) if root is not None
        }

        for label, root in roots:
            if root is None:
                continue
            for field_name in root.fields:
                owner = root_fields[label].get(field_name)
                if owner is not None:
                    raise SchemaConflictError(
                        f"{label}.{field_name}",
                        (owner, source.name),
                        "root field is declared by more than one source",
                    )
                root_fields[label][field_name] = source.name

        for type_name, graphql_type in graphql_schema.type_map.items():
            if type_name.startswith("__") or type_name in root_names or type_name in specified_scalar_types:
                continue

            shape = type_shape(graphql_type)
            binding = type_binding(graphql_type)
            if type_name not in declared:
                declared[type_name] = (source.name, shape, binding)
                continue

            owner, owner_shape, owner_binding = declared[type_name]
            if owner_shape != shape:
                raise SchemaConflictError(type_name, (owner, source.name), "declarations differ")
            if owner_binding != binding:
                raise SchemaConflictError(
                    type_name,
                    (owner, source.name),
                    "same fields backed by different Python attributes",
                )

    query = merge_types("Query", tuple(source.query for source in sources))
    mutation_roots = tuple(source.mutation for source in sources if source.mutation is not None)
    mutation = merge_types("Mutation", mutation_roots) if mutation_roots else None

    extra_types: list = []
    for source in sources:
        for extra in source.types:
            if extra not in extra_types:
                extra_types.append(extra)

    try:
        schema = strawberry.Schema(
            query=query,
            mutation=mutation,
            types=extra_types,
            config=composed_config(),
        )
    except Exception as e:
        raise InvalidSchemaError(COMPOSED_SOURCE_NAME, str(e)) from e

    composed = ComposedSchema(
        sources=tuple(names),
        query=query,
        mutation=mutation,
        types=tuple(extra_types),
        schema=schema,
        root_fields={label: dict(fields) for label, fields in root_fields.items() if fields},
    )
    logger.info(
        "Composed GraphQL schema",
        sources=list(composed.sources),
        query_fields=len(composed.query_fields),
        mutation_fields=len(composed.mutation_fields),
        types=len(declared),
    )
    return composed
