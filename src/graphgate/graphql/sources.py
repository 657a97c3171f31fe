"""
Schema sources the gateway composes.
"""

from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import Optional, Tuple

import strawberry
from strawberry import Schema

from graphgate.core.errors import InvalidSchemaError


class SchemaSourceKind(Enum):
    """Where a schema source comes from."""
    GENERATED = "generated"
    HAND_AUTHORED = "hand_authored"


@dataclass(frozen=True)
class ExecutableSchema:
    """
    A named set of root types and the types they reach.

    Attributes:
        name: Source name used in logs and conflict reports
        kind: Generated from models or written by hand
        query: Strawberry ``Query`` root class
        mutation: Optional strawberry ``Mutation`` root class
        types: Extra types not reachable from the roots
    """
    name: str
    kind: SchemaSourceKind
    query: type
    mutation: Optional[type] = None
    types: Tuple[type, ...] = ()

    @cached_property
    def schema(self) -> Schema:
        return self.build()

    def build(self) -> Schema:
        """
        Build the source on its own to prove it is self-consistent.

        Raises:
            InvalidSchemaError: If strawberry rejects the source
        """
        try:
            return strawberry.Schema(
                query=self.query,
                mutation=self.mutation,
                types=list(self.types),
            )
        except Exception as e:
            raise InvalidSchemaError(self.name, str(e)) from e
