"""
Hand-written schema source backed by the demo ``restaurants`` collection.
"""

from typing import List, Optional

import strawberry
from strawberry.types import Info

from graphgate.core.errors import DependencyUnavailableError, ResolverError
from graphgate.core.logging import get_logger
from graphgate.graphql.sources import ExecutableSchema, SchemaSourceKind

logger = get_logger(__name__)

RESTAURANTS_COLLECTION = "restaurants"
RESTAURANTS_LIMIT = 5


@strawberry.type
class Restaurant:
    """A restaurant document."""
    id_: strawberry.ID = strawberry.field(name="_id")
    name: Optional[str] = None


@strawberry.type
class Query:
    @strawberry.field
    async def restaurants(self, info: Info) -> List[Restaurant]:
        """First restaurants of the collection."""
        connection = info.context.database
        try:
            collection = connection.collection(RESTAURANTS_COLLECTION)
            cursor = collection.find({}).limit(RESTAURANTS_LIMIT)
            documents = await connection.run(cursor.to_list(length=None))
        except DependencyUnavailableError:
            raise
        except Exception as e:
            logger.error(
                "Could not fetch restaurants",
                error=str(e),
                method=info.context.method,
                path=info.context.path,
                exc_info=True,
            )
            raise ResolverError("restaurants", "Could not fetch restaurants") from e

        return [
            Restaurant(id_=str(document["_id"]), name=document.get("name"))
            for document in documents
        ]


def build_restaurants_schema() -> ExecutableSchema:
    """Schema source exposing ``restaurants``."""
    return ExecutableSchema(
        name="restaurants",
        kind=SchemaSourceKind.HAND_AUTHORED,
        query=Query,
    )
