"""
Shared fixtures: in-memory stores standing in for MongoDB, the engine built on
them, and a TestClient whose database dependencies point at the same stores.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ALGORITHM", "HS256")
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017/assetverse_test")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"
os.environ.setdefault("STRIPE_SECRET_KEY", "")

import copy
import re
from typing import Any, Dict, Iterable, List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from jose import jwt

from assetverse.core.directory import UserDirectory
from assetverse.core.errors import DuplicateRecordError
from assetverse.core.lifecycle import LifecycleEngine
from assetverse.db.stores import Record, Store, Transactor

SECRET_KEY = os.environ["SECRET_KEY"]


def _match_condition(value: Any, condition: Dict[str, Any]) -> bool:
    for op, arg in condition.items():
        if op == "$in":
            if value not in arg:
                return False
        elif op == "$ne":
            if value == arg:
                return False
        elif op in ("$gt", "$gte", "$lt", "$lte"):
            if value is None:
                return False
            if op == "$gt" and not value > arg:
                return False
            if op == "$gte" and not value >= arg:
                return False
            if op == "$lt" and not value < arg:
                return False
            if op == "$lte" and not value <= arg:
                return False
        elif op == "$regex":
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not isinstance(value, str) or not re.search(arg, value, flags):
                return False
        elif op == "$options":
            continue
        else:
            raise NotImplementedError(op)
    return True


def matches(record: Record, filter: Optional[Record]) -> bool:
    for key, expected in (filter or {}).items():
        value = record.get(key)
        if isinstance(expected, dict) and expected and all(k.startswith("$") for k in expected):
            if not _match_condition(value, expected):
                return False
        elif value != expected:
            return False
    return True


class InMemoryStore(Store):
    """Dict-backed Store with the same query subset as MongoStore."""

    def __init__(self, unique: Iterable[str] = ()):
        self.records: Dict[str, Record] = {}
        self.unique = tuple(unique)

    async def insert(self, record: Record, session=None) -> str:
        for field in self.unique:
            if any(r.get(field) == record.get(field) for r in self.records.values()):
                raise DuplicateRecordError()
        record_id = str(ObjectId())
        stored = copy.deepcopy({k: v for k, v in record.items() if k != "id"})
        stored["id"] = record_id
        self.records[record_id] = stored
        return record_id

    async def find_by_id(self, record_id: str, session=None) -> Optional[Record]:
        record = self.records.get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def find_one(self, filter: Record, session=None) -> Optional[Record]:
        for record in self.records.values():
            if matches(record, filter):
                return copy.deepcopy(record)
        return None

    async def find_many(self, filter=None, sort=None, skip=0, limit=0, session=None) -> List[Record]:
        found = [r for r in self.records.values() if matches(r, filter)]
        for key, direction in reversed(list(sort or [])):
            found.sort(key=lambda r: (r.get(key) is None, r.get(key)), reverse=direction < 0)
        found = found[skip:]
        if limit:
            found = found[:limit]
        return copy.deepcopy(found)

    async def update_by_id(self, record_id: str, patch: Record, session=None) -> int:
        record = self.records.get(record_id)
        if record is None:
            return 0
        record.update(copy.deepcopy(patch))
        return 1

    async def update_many(self, filter: Record, patch: Record, session=None) -> int:
        touched = 0
        for record in self.records.values():
            if matches(record, filter):
                record.update(copy.deepcopy(patch))
                touched += 1
        return touched

    async def delete_by_id(self, record_id: str, session=None) -> int:
        return 1 if self.records.pop(record_id, None) is not None else 0

    async def delete_many(self, filter: Record, session=None) -> int:
        doomed = [rid for rid, r in self.records.items() if matches(r, filter)]
        for rid in doomed:
            del self.records[rid]
        return len(doomed)

    async def find_and_modify(self, record_id: str, condition: Record, update: Record, session=None) -> Optional[Record]:
        record = self.records.get(record_id)
        if record is None or not matches(record, condition):
            return None
        for key, value in update.get("$set", {}).items():
            record[key] = copy.deepcopy(value)
        for key, value in update.get("$inc", {}).items():
            record[key] = record.get(key, 0) + value
        return copy.deepcopy(record)


class InMemoryTransactor(Transactor):
    """Snapshots every store before the work and restores them if it raises."""

    def __init__(self, *stores: InMemoryStore):
        self.stores = stores
        self.runs = 0

    async def run(self, work):
        self.runs += 1
        snapshots = [copy.deepcopy(store.records) for store in self.stores]
        try:
            return await work(None)
        except BaseException:
            for store, snapshot in zip(self.stores, snapshots):
                store.records = snapshot
            raise


def make_token(email: str, **claims: Any) -> str:
    payload = {"sub": email, "email": email, **claims}
    return jwt.encode(payload, SECRET_KEY, algorithm="HS256")


def auth_headers(email: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(email)}"}


# --- Fixtures ---

@pytest.fixture
def assets_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def requests_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def assignments_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def users_store() -> InMemoryStore:
    return InMemoryStore(unique=("email",))


@pytest.fixture
def engine(assets_store, requests_store, assignments_store) -> LifecycleEngine:
    transactor = InMemoryTransactor(assets_store, requests_store, assignments_store)
    return LifecycleEngine(
        assets=assets_store,
        requests=requests_store,
        assignments=assignments_store,
        transactor=transactor,
    )


@pytest.fixture
def directory(users_store) -> UserDirectory:
    return UserDirectory(users=users_store)


@pytest.fixture
def client(engine, directory):
    from assetverse.db.database import get_directory, get_engine
    from assetverse.main import app

    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_directory] = lambda: directory
    # No context manager: lifespan would try to reach MongoDB
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()
