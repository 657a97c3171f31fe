"""
Declarative model definitions.

Each model describes a document collection. The schema generator turns these
definitions into GraphQL types, queries and mutations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class FieldType(Enum):
    """Supported field types."""
    ID = "id"
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATETIME = "datetime"


@dataclass
class ModelField:
    """A single field of a model."""
    name: str
    field_type: FieldType
    required: bool = False
    description: Optional[str] = None
    auto_now_add: bool = False


@dataclass
class ModelDefinition:
    """
    A declarative model backed by a document collection.

    Attributes:
        name: GraphQL type name, e.g. ``Sample``
        collection: Collection the documents live in
        fields: Fields other than ``_id``, which every model has
        plural: Name of the multi query, defaults to the lower-cased name plus ``s``
        description: Type description shown in the schema
    """
    name: str
    collection: str
    fields: List[ModelField] = field(default_factory=list)
    plural: Optional[str] = None
    description: Optional[str] = None

    @property
    def single_name(self) -> str:
        return self.name[0].lower() + self.name[1:]

    @property
    def multi_name(self) -> str:
        return self.plural or f"{self.single_name}s"


Sample = ModelDefinition(
    name="Sample",
    collection="samples",
    description="Demo model generated from a declarative definition",
    fields=[
        ModelField("name", FieldType.STRING, required=True, description="Display name"),
        ModelField("description", FieldType.STRING),
        ModelField("score", FieldType.FLOAT),
        ModelField("createdAt", FieldType.DATETIME, description="Creation time", auto_now_add=True),
    ],
)

MODELS: Dict[str, ModelDefinition] = {
    Sample.name: Sample,
}
