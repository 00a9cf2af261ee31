import copy
from typing import Any, Dict, List, Optional, Sequence

import pytest

from async_mongo_query.base.interfaces import Model
from async_mongo_query.base.query import QueryBuilder


# --- In-process doubles for the Motor collection surface ---
class FakeCursor:
    def __init__(self, documents: List[Dict[str, Any]], error: Optional[Exception] = None):
        self._documents = documents
        self._error = error

    async def to_list(self, length=None):
        if self._error is not None:
            raise self._error
        return list(self._documents)


class FakeDatabase:
    def __init__(self):
        self.commands: List[tuple] = []
        self.command_result: Dict[str, Any] = {"queryPlanner": {"winningPlan": {"stage": "COLLSCAN"}}, "ok": 1.0}
        self.error: Optional[Exception] = None

    async def command(self, command, session=None):
        self.commands.append((copy.deepcopy(command), session))
        if self.error is not None:
            raise self.error
        return self.command_result


class FakeCollection:
    name = "users"

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None):
        self.documents = documents or []
        self.database = FakeDatabase()
        self.count_calls: List[tuple] = []
        self.aggregate_calls: List[tuple] = []
        self.error: Optional[Exception] = None

    async def count_documents(self, filter, session=None):
        self.count_calls.append((copy.deepcopy(filter), session))
        if self.error is not None:
            raise self.error
        return len(self.documents)

    def aggregate(self, pipeline, session=None):
        self.aggregate_calls.append((copy.deepcopy(list(pipeline)), session))
        return FakeCursor(self.documents, self.error)


class FakeModel(Model[Dict[str, Any]]):
    """Model double recording every find call."""

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None, id_field: str = "_id"):
        self.collection = FakeCollection(documents)
        self.documents = documents or []
        self.find_calls: List[tuple] = []
        self.error: Optional[Exception] = None
        self._id_field = id_field

    @property
    def id_field(self) -> str:
        return self._id_field

    def get_collection(self):
        return self.collection

    async def find(self, filter, options, populated_fields: Sequence[str]):
        self.find_calls.append((copy.deepcopy(filter), dict(options), list(populated_fields)))
        if self.error is not None:
            raise self.error
        return list(self.documents)


USERS = [
    {"_id": 1, "name": "Alice", "age": 30},
    {"_id": 2, "name": "Bob", "age": 42},
]


@pytest.fixture
def model() -> FakeModel:
    return FakeModel(documents=[dict(u) for u in USERS])


@pytest.fixture
def empty_model() -> FakeModel:
    return FakeModel(documents=[])


@pytest.fixture
def qb(model: FakeModel) -> QueryBuilder:
    return QueryBuilder(model)


@pytest.fixture
def strict_qb(model: FakeModel) -> QueryBuilder:
    return QueryBuilder(model, strict=True)


@pytest.fixture
def make_model():
    return FakeModel
