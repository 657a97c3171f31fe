"""
GraphQL Schema Auto-Generation from declarative models.

Dynamically generates GraphQL types, queries and mutations for every model and
wraps them in an executable schema source.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import strawberry
from bson import ObjectId
from strawberry.types import Info

from graphgate.core.errors import InvalidRequestError
from graphgate.core.logging import get_logger
from graphgate.graphql.sources import ExecutableSchema, SchemaSourceKind
from graphgate.models import MODELS, FieldType, ModelDefinition, ModelField

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass
class GraphQLTypeMapping:
    """Maps model field types to GraphQL types."""

    TYPE_MAP = {
        FieldType.ID: strawberry.ID,
        FieldType.STRING: str,
        FieldType.INTEGER: int,
        FieldType.FLOAT: float,
        FieldType.BOOLEAN: bool,
        FieldType.DATETIME: datetime,
    }

    @classmethod
    def get_graphql_type(cls, field_type: FieldType, nullable: bool = True):
        """Get GraphQL type for a model field type."""
        base_type = cls.TYPE_MAP.get(field_type, str)
        return Optional[base_type] if nullable else base_type


def document_id(value: str) -> Any:
    """Convert an ``_id`` argument to the value stored in the collection."""
    return ObjectId(value) if ObjectId.is_valid(value) else value


class SchemaGenerator:
    """
    Auto-generates an executable schema from declarative models.

    For every model it creates an object type, a paged output type, an input
    type, single and multi queries, and create and delete mutations.
    """

    def __init__(self, models: Mapping[str, ModelDefinition]):
        """Initialize with the models to expose."""
        self.models = models
        self.logger = get_logger(__name__)
        self._generated_types: Dict[str, type] = {}
        self._generated_queries: Dict[str, Any] = {}
        self._generated_mutations: Dict[str, Any] = {}

    def generate_schema(self, name: str = "generated") -> ExecutableSchema:
        """
        Generate the schema source for all models.

        Returns:
            Executable schema source of kind ``generated``
        """
        self.logger.info(f"Generating GraphQL schema from {len(self.models)} models")

        self._generated_types.clear()
        self._generated_queries.clear()
        self._generated_mutations.clear()

        for model in self.models.values():
            self._generate_model(model)

        query_type = self._root_type("Query", self._generated_queries)
        mutation_type = (
            self._root_type("Mutation", self._generated_mutations)
            if self._generated_mutations else None
        )

        self.logger.info(f"Generated GraphQL schema with {len(self._generated_types)} types")
        return ExecutableSchema(
            name=name,
            kind=SchemaSourceKind.GENERATED,
            query=query_type,
            mutation=mutation_type,
        )

    def get_generated_types(self) -> Dict[str, type]:
        """Get all generated GraphQL types."""
        return self._generated_types.copy()

    def _generate_model(self, model: ModelDefinition) -> None:
        object_type = self._object_type(model)
        multi_type = self._multi_output_type(model, object_type)
        input_type = self._input_type(model)

        self._generated_types[model.name] = object_type
        self._generated_types[multi_type.__name__] = multi_type
        self._generated_types[input_type.__name__] = input_type

        self._generated_queries[model.single_name] = strawberry.field(
            resolver=self._single_resolver(model, object_type),
            description=f"Fetch a single {model.name} by id",
        )
        self._generated_queries[model.multi_name] = strawberry.field(
            resolver=self._multi_resolver(model, object_type, multi_type),
            description=f"List {model.name} documents",
        )
        self._generated_mutations[f"create{model.name}"] = strawberry.mutation(
            resolver=self._create_resolver(model, object_type, input_type),
            description=f"Create a {model.name}",
        )
        self._generated_mutations[f"delete{model.name}"] = strawberry.mutation(
            resolver=self._delete_resolver(model),
            description=f"Delete a {model.name} by id",
        )

    def _object_type(self, model: ModelDefinition) -> type:
        annotations: Dict[str, Any] = {"id_": strawberry.ID}
        namespace: Dict[str, Any] = {"id_": strawberry.field(name="_id")}

        for model_field in model.fields:
            annotations[model_field.name] = GraphQLTypeMapping.get_graphql_type(
                model_field.field_type, nullable=not model_field.required
            )
            namespace[model_field.name] = strawberry.field(description=model_field.description)

        namespace["__annotations__"] = annotations
        return strawberry.type(
            type(model.name, (), namespace),
            description=model.description or f"Documents from the {model.collection} collection",
        )

    def _multi_output_type(self, model: ModelDefinition, object_type: type) -> type:
        namespace = {
            "__annotations__": {"results": List[object_type], "total_count": int},
        }
        return strawberry.type(
            type(f"{model.name}MultiOutput", (), namespace),
            description=f"A page of {model.name} documents",
        )

    def _input_type(self, model: ModelDefinition) -> type:
        annotations: Dict[str, Any] = {}
        namespace: Dict[str, Any] = {}

        # Required fields first so the generated dataclass accepts them
        for model_field in sorted(self._writable_fields(model), key=lambda f: not f.required):
            annotations[model_field.name] = GraphQLTypeMapping.get_graphql_type(
                model_field.field_type, nullable=not model_field.required
            )
            if not model_field.required:
                namespace[model_field.name] = None

        namespace["__annotations__"] = annotations
        return strawberry.input(type(f"Create{model.name}Input", (), namespace))

    @staticmethod
    def _writable_fields(model: ModelDefinition) -> List[ModelField]:
        return [f for f in model.fields if not f.auto_now_add]

    @staticmethod
    def _from_document(model: ModelDefinition, object_type: type, document: Mapping[str, Any]) -> Any:
        values = {f.name: document.get(f.name) for f in model.fields}
        return object_type(id_=str(document["_id"]), **values)

    def _single_resolver(self, model: ModelDefinition, object_type: type):
        from_document = self._from_document

        async def resolve_single(info: Info, id: strawberry.ID) -> Optional[object_type]:
            connection = info.context.database
            collection = connection.collection(model.collection)
            document = await connection.run(collection.find_one({"_id": document_id(id)}))
            if document is None:
                return None
            return from_document(model, object_type, document)

        return resolve_single

    def _multi_resolver(self, model: ModelDefinition, object_type: type, multi_type: type):
        from_document = self._from_document

        async def resolve_multi(
            info: Info,
            limit: int = DEFAULT_PAGE_SIZE,
            offset: int = 0,
        ) -> multi_type:
            if limit < 0 or offset < 0:
                raise InvalidRequestError("limit and offset must not be negative")
            limit = min(limit, MAX_PAGE_SIZE)

            connection = info.context.database
            collection = connection.collection(model.collection)
            cursor = collection.find({}).skip(offset).limit(limit)
            documents = await connection.run(cursor.to_list(length=None))
            total = await connection.run(collection.count_documents({}))
            return multi_type(
                results=[from_document(model, object_type, d) for d in documents],
                total_count=total,
            )

        return resolve_multi

    def _create_resolver(self, model: ModelDefinition, object_type: type, input_type: type):
        from_document = self._from_document
        writable = self._writable_fields(model)

        async def resolve_create(info: Info, input: input_type) -> object_type:
            document = {}
            for model_field in writable:
                value = getattr(input, model_field.name, None)
                if value is not None:
                    document[model_field.name] = value
            for model_field in model.fields:
                if model_field.auto_now_add:
                    document[model_field.name] = datetime.now(timezone.utc)

            connection = info.context.database
            collection = connection.collection(model.collection)
            result = await connection.run(collection.insert_one(document))
            document["_id"] = result.inserted_id
            logger.info(f"Created {model.name}", id=str(result.inserted_id))
            return from_document(model, object_type, document)

        return resolve_create

    def _delete_resolver(self, model: ModelDefinition):
        async def resolve_delete(info: Info, id: strawberry.ID) -> bool:
            connection = info.context.database
            collection = connection.collection(model.collection)
            result = await connection.run(collection.delete_one({"_id": document_id(id)}))
            return result.deleted_count > 0

        return resolve_delete

    @staticmethod
    def _root_type(name: str, fields: Dict[str, Any]) -> type:
        return strawberry.type(type(name, (), {"__annotations__": {}, **fields}))


def build_generated_schema(models: Optional[Mapping[str, ModelDefinition]] = None) -> ExecutableSchema:
    """Generate the schema source for the given models, or the bundled ones."""
    return SchemaGenerator(MODELS if models is None else models).generate_schema()
