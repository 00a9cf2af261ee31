# src/async_mongo_query/base/interfaces.py

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Sequence, TypeVar

# Type variable for the documents a model returns
T = TypeVar("T")


class Model(Generic[T], ABC):
    """
    Boundary contract the query builder executes against.

    A model owns one collection. The builder issues count, explain and
    aggregate directly on ``get_collection()`` and delegates filtered reads,
    including resolution of populated fields, to ``find``.
    """

    @property
    def id_field(self) -> str:
        """The identity field targeted by ``QueryBuilder.by_id``."""
        return "_id"

    @abstractmethod
    def get_collection(self) -> Any:
        """
        Returns the collection handle native operations are issued against
        (an ``AsyncIOMotorCollection`` for MongoDB).
        """
        pass

    @abstractmethod
    async def find(
        self,
        filter: Dict[str, Any],
        options: Dict[str, Any],
        populated_fields: Sequence[str],
    ) -> List[T]:
        """
        Runs a filtered read and attaches related documents.

        Args:
            filter: Native filter document.
            options: ``limit``, ``skip``, ``sort``, ``projection`` (each only
                when set) and ``session`` (always present, may be None).
            populated_fields: Reference fields to resolve into related
                documents on every result.

        Returns:
            The hydrated documents, in cursor order.
        """
        pass

    def query(self, strict: bool = False):
        """Starts a new QueryBuilder bound to this model."""
        from async_mongo_query.base.query import QueryBuilder

        return QueryBuilder(self, strict=strict)
