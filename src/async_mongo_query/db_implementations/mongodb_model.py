# src/async_mongo_query/db_implementations/mongodb_model.py

import logging
from dataclasses import dataclass
from typing import (Any, Dict, Generic, Hashable, List, Mapping, Optional,
                    Sequence, Type, TypeVar)

# --- Motor Driver Import ---
from motor.motor_asyncio import (AsyncIOMotorClient, AsyncIOMotorCollection,
                                 AsyncIOMotorDatabase)
from pydantic import BaseModel

# --- Framework Imports ---
from async_mongo_query.base.interfaces import Model
from async_mongo_query.base.options import sort_direction

# --- Type Variables ---
T = TypeVar("T")
DB_RECORD_TYPE = Dict[str, Any]

base_logger = logging.getLogger("async_mongo_query.db_implementations.mongodb_model")


@dataclass(frozen=True)
class Reference:
    """A field holding the key (or list of keys) of documents in another collection."""

    collection: str
    foreign_field: str = "_id"


def to_sort_list(sort: Mapping[str, Any]) -> List[tuple]:
    """Converts a field->direction mapping to PyMongo's list of pairs."""
    return [(field_name, sort_direction(direction)) for field_name, direction in sort.items()]


def attach_related(
    documents: List[DB_RECORD_TYPE],
    field_name: str,
    related: Mapping[Hashable, DB_RECORD_TYPE],
) -> None:
    """
    Replaces the reference stored under ``field_name`` on each document with
    the related document. Scalar references resolve to the document or None;
    list references keep only the keys that resolved, in stored order.
    """
    for document in documents:
        if field_name not in document:
            continue
        value = document[field_name]
        if isinstance(value, list):
            document[field_name] = [
                related[key] for key in value if _hashable(key) and key in related
            ]
        elif _hashable(value):
            document[field_name] = related.get(value)
        else:
            base_logger.debug(
                f"Leaving unhashable reference on '{field_name}' untouched: {value!r}"
            )


def _hashable(value: Any) -> bool:
    try:
        hash(value)
    except TypeError:
        return False
    return True


def _collect_keys(documents: Sequence[DB_RECORD_TYPE], field_name: str) -> List[Any]:
    keys: List[Any] = []
    seen = set()
    for document in documents:
        value = document.get(field_name)
        candidates = value if isinstance(value, list) else [value]
        for key in candidates:
            if key is None or not _hashable(key) or key in seen:
                continue
            seen.add(key)
            keys.append(key)
    return keys


class MongoDBModel(Model[T], Generic[T]):
    """
    Model over one MongoDB collection using Motor.

    ``references`` declares which fields can be populated and where their
    related documents live. When ``document_type`` (a pydantic model) is given,
    every document returned by ``find`` is validated into it after population.
    """

    def __init__(
        self,
        client: AsyncIOMotorClient,
        database_name: str,
        collection_name: str,
        references: Optional[Mapping[str, Reference]] = None,
        document_type: Optional[Type[BaseModel]] = None,
        id_field: str = "_id",
    ):
        """
        Args:
            client: An instance of AsyncIOMotorClient.
            database_name: The name of the MongoDB database.
            collection_name: The name of the MongoDB collection.
            references: Populatable field name -> Reference.
            document_type: Optional pydantic model used to hydrate results.
            id_field: Field matched by ``QueryBuilder.by_id``.
        """
        if not isinstance(client, AsyncIOMotorClient):
            raise TypeError("client must be an instance of AsyncIOMotorClient")
        if document_type is not None and not (
            isinstance(document_type, type) and issubclass(document_type, BaseModel)
        ):
            raise TypeError("document_type must be a pydantic BaseModel subclass")

        self._client = client
        self._database_name = database_name
        self._db: AsyncIOMotorDatabase = client[database_name]
        self._collection_name = collection_name
        self._collection: AsyncIOMotorCollection = self._db[collection_name]
        self._references: Dict[str, Reference] = dict(references or {})
        self._document_type = document_type

        if id_field != "_id":
            base_logger.warning(
                f"MongoDB typically uses '_id' as the identity field, "
                f"but '{id_field}' was provided for '{collection_name}'."
            )
        self._id_field = id_field

        self._logger = logging.getLogger(
            f"{__name__}.{self.__class__.__name__}[{collection_name}]"
        )
        self._logger.info(
            f"Model created for collection '{collection_name}' "
            f"(db: '{database_name}', references: {sorted(self._references)})."
        )

    @property
    def id_field(self) -> str:
        return self._id_field

    @property
    def references(self) -> Dict[str, Reference]:
        return dict(self._references)

    def get_collection(self) -> AsyncIOMotorCollection:
        return self._collection

    async def find(
        self,
        filter: Dict[str, Any],
        options: Dict[str, Any],
        populated_fields: Sequence[str],
    ) -> List[T]:
        unknown = [name for name in populated_fields if name not in self._references]
        if unknown:
            raise ValueError(
                f"Cannot populate {unknown!r} on '{self._collection_name}': "
                f"declared references are {sorted(self._references)!r}"
            )

        session = options.get("session")
        find_kwargs: Dict[str, Any] = {"session": session}
        if options.get("projection"):
            find_kwargs["projection"] = options["projection"]
        if options.get("sort"):
            find_kwargs["sort"] = to_sort_list(options["sort"])
        if options.get("skip") is not None:
            find_kwargs["skip"] = options["skip"]
        if options.get("limit") is not None:
            find_kwargs["limit"] = options["limit"]

        self._logger.debug(f"MongoDB find filter: {filter}, kwargs: {find_kwargs}")
        cursor = self._collection.find(filter, **find_kwargs)
        documents: List[DB_RECORD_TYPE] = await cursor.to_list(length=None)

        for field_name in populated_fields:
            await self._populate(documents, field_name, session)

        self._logger.info(
            f"Found {len(documents)} document(s) in '{self._collection_name}'."
        )
        if self._document_type is None:
            return documents
        return [self._document_type.model_validate(doc) for doc in documents]

    async def _populate(
        self, documents: List[DB_RECORD_TYPE], field_name: str, session: Any
    ) -> None:
        reference = self._references[field_name]
        keys = _collect_keys(documents, field_name)
        if not keys:
            self._logger.debug(f"No references to populate on '{field_name}'.")
            return
        related_collection = self._db[reference.collection]
        cursor = related_collection.find(
            {reference.foreign_field: {"$in": keys}}, session=session
        )
        related: Dict[Hashable, DB_RECORD_TYPE] = {}
        async for record in cursor:
            key = record.get(reference.foreign_field)
            if _hashable(key):
                related[key] = record
        self._logger.debug(
            f"Populating '{field_name}' from '{reference.collection}': "
            f"{len(related)}/{len(keys)} key(s) resolved."
        )
        attach_related(documents, field_name, related)
