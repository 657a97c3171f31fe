import os
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from graphgate.app import create_app
from graphgate.core.config import Settings
from graphgate.db.connection import MongoConnection

TEST_MONGO_URI = "mongodb://localhost:27017/graphgate_test"
TEST_JWT_SECRET = "test-secret"
GRAPHQL_PATH = "/api/graphql"
ALLOWED_ORIGIN = "http://localhost:3000"


# Environment variables that may be modified by tests
_ENV_VARS_TO_ISOLATE = [
    "MONGO_URI",
    "MONGO_DATABASE",
    "ENVIRONMENT",
    "LOG_LEVEL",
    "MASK_ERRORS",
    "CORS_ORIGINS",
    "JWT_SECRET_KEY",
    "TRUST_PROXY",
]


@pytest.fixture(autouse=True)
def env_isolation():
    """Isolate environment variables between tests."""
    backup = {k: os.environ.get(k) for k in _ENV_VARS_TO_ISOLATE}
    try:
        yield
    finally:
        for k, v in backup.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v


def _matches(document: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
    return all(document.get(key) == value for key, value in (query or {}).items())


class FakeCursor:
    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents
        self._skip = 0
        self._limit = 0

    def skip(self, count: int) -> "FakeCursor":
        self._skip = count
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._limit = count
        return self

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        documents = self._documents[self._skip:]
        if self._limit:
            documents = documents[:self._limit]
        return [dict(d) for d in documents]


class FakeCollection:
    """In-memory stand-in for an async pymongo collection."""

    def __init__(self, name: str, documents: Optional[List[Dict[str, Any]]] = None):
        self.name = name
        self.documents = list(documents or [])
        self.calls: List[str] = []
        self.error: Optional[Exception] = None

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if self.error is not None:
            raise self.error

    def find(self, query: Optional[Dict[str, Any]] = None) -> FakeCursor:
        self._record("find")
        return FakeCursor([d for d in self.documents if _matches(d, query)])

    async def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self._record("find_one")
        for document in self.documents:
            if _matches(document, query):
                return dict(document)
        return None

    async def count_documents(self, query: Dict[str, Any]) -> int:
        self._record("count_documents")
        return sum(1 for d in self.documents if _matches(d, query))

    async def insert_one(self, document: Dict[str, Any]) -> SimpleNamespace:
        self._record("insert_one")
        stored = dict(document)
        stored.setdefault("_id", ObjectId())
        self.documents.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    async def delete_one(self, query: Dict[str, Any]) -> SimpleNamespace:
        self._record("delete_one")
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                del self.documents[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    def __init__(self, name: str):
        self.name = name
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


class FakeAdmin:
    def __init__(self, client: "FakeClient"):
        self.client = client

    async def command(self, name: str) -> Dict[str, Any]:
        self.client.commands.append(name)
        if self.client.unavailable:
            raise ServerSelectionTimeoutError("No servers available")
        return {"ok": 1.0}


class FakeClient:
    """In-memory stand-in for ``AsyncMongoClient``."""

    def __init__(self, database: str = "graphgate_test", unavailable: bool = False):
        self.database = FakeDatabase(database)
        self.admin = FakeAdmin(self)
        self.unavailable = unavailable
        self.commands: List[str] = []
        self.closed = False

    def __getitem__(self, name: str) -> FakeDatabase:
        return self.database

    def get_default_database(self) -> FakeDatabase:
        return self.database

    async def close(self) -> None:
        self.closed = True


def make_settings(**overrides: Any) -> Settings:
    values = {
        "mongo_uri": TEST_MONGO_URI,
        "environment": "development",
        "jwt_secret_key": TEST_JWT_SECRET,
        "cors_origins": [ALLOWED_ORIGIN],
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_connection(client: Optional[FakeClient] = None, **kwargs: Any) -> MongoConnection:
    return MongoConnection(TEST_MONGO_URI, client=client or FakeClient(), **kwargs)


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def build_client(fake_client):
    """Factory returning a TestClient for an app wired to ``fake_client``."""

    def _build(sources=None, **setting_overrides: Any) -> TestClient:
        settings = make_settings(**setting_overrides)
        app = create_app(settings, sources=sources, connection=make_connection(fake_client))
        return TestClient(app)

    return _build


def graphql(client: TestClient, query: str, variables: Optional[Dict[str, Any]] = None, **kwargs: Any):
    return client.post(GRAPHQL_PATH, json={"query": query, "variables": variables or {}}, **kwargs)
