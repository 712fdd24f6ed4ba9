# shared fixtures for backend api tests
# provides mock db, local fallback store, stub generator, wizard registry, and httpx test client

import json

import pytest
import pytest_asyncio
from unittest.mock import MagicMock
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from httpx import AsyncClient, ASGITransport

from app.main import app
from app.services.db import get_db
from app.services.auth_service import hash_password
from app.services.errors import GenerationFailed
from app.services.fallback_store import LocalStore, get_local_store
from app.services.plan_generator import PlanGenerator, get_plan_generator
from app.services.plan_wizard import WizardRegistry, get_wizard_registry
from app.dependencies import get_current_user


# test ids (fixed so tests can import them from tests.conftest)
THERAPIST_OID = ObjectId("665f1c2e9b1d4a0012345678")
OTHER_THERAPIST_OID = ObjectId("665f1c2e9b1d4a0087654321")
THERAPIST_ID = str(THERAPIST_OID)
OTHER_THERAPIST_ID = str(OTHER_THERAPIST_OID)


# test user documents (as they'd appear from mongodb)

THERAPIST_DOC = {
    "_id": THERAPIST_OID,
    "email": "maria.lopez@recreo.app",
    "hashed_password": hash_password("recreo123"),
    "name": "Maria Lopez, CTRS",
    "practice_name": "Sunrise Rehab Center",
    "active_tab": "patients",
    "created_at": "2025-01-10T00:00:00+00:00",
}

OTHER_THERAPIST_DOC = {
    "_id": OTHER_THERAPIST_OID,
    "email": "sam.okafor@recreo.app",
    "hashed_password": hash_password("recreo123"),
    "name": "Sam Okafor, CTRS",
    "practice_name": None,
    "active_tab": "dashboard",
    "created_at": "2025-02-01T00:00:00+00:00",
}


# generated plan content (as the llm returns it)

SAMPLE_PLAN_CONTENT = {
    "planTitle": "Fine Motor Recovery Through Creative Arts",
    "overview": "An 8-week program using adapted crafts and games to rebuild hand dexterity.",
    "objectives": [
        {
            "goal": "Improve fine motor skills",
            "measurableOutcome": "Complete a 9-hole peg test 20% faster",
            "timeframe": "8 weeks",
        },
    ],
    "activities": [
        {
            "name": "Adapted Beading",
            "description": "String large beads onto a lanyard to build pincer grasp.",
            "duration": "20 minutes",
            "materials": ["large beads", "lanyard cord"],
            "adaptations": "Use built-up grips and a non-slip mat.",
            "progressMeasures": "Beads strung per 5 minutes",
        },
    ],
    "weeklySchedule": [
        {"week": 1, "focus": "Baseline and grasp warm-ups", "activities": ["Adapted Beading"]},
        {"week": 2, "focus": "Bilateral coordination", "activities": ["Adapted Beading"]},
    ],
    "assessmentMethods": ["9-hole peg test", "Therapist observation notes"],
    "recommendations": ["Practice beading at home twice a week"],
}


# sample records (as stored in mongodb / the local bucket)

SAMPLE_PATIENT = {
    "patient_id": "patient_aaa111bbb222",
    "user_id": THERAPIST_ID,
    "name": "Robert Hayes",
    "age": 68,
    "diagnosis": "Parkinson's disease",
    "functional_level": "minimal-assistance",
    "interests": "gardening, jazz",
    "limitations": "tremor in right hand",
    "created_at": "2025-05-01T09:00:00+00:00",
}

SAMPLE_PATIENT_2 = {
    "patient_id": "patient_ccc333ddd444",
    "user_id": THERAPIST_ID,
    "name": "Lena Park",
    "age": 34,
    "diagnosis": "Traumatic brain injury",
    "functional_level": "moderate-assistance",
    "interests": "painting",
    "limitations": "",
    "created_at": "2025-06-01T09:00:00+00:00",
}

SAMPLE_PLAN = {
    "plan_id": "plan_eee555fff666",
    "user_id": THERAPIST_ID,
    "patient_name": "Robert Hayes",
    "patient_age": 68,
    "diagnosis": "Parkinson's disease",
    "primary_goal": "Maintain hand dexterity",
    "plan_data": json.dumps(SAMPLE_PLAN_CONTENT),
    "status": "active",
    "created_at": "2025-06-10T09:00:00+00:00",
}

SAMPLE_PLAN_2 = {
    "plan_id": "plan_ggg777hhh888",
    "user_id": THERAPIST_ID,
    "patient_name": "Lena Park",
    "patient_age": 34,
    "diagnosis": "Traumatic brain injury",
    "primary_goal": "Improve attention span",
    "plan_data": json.dumps(SAMPLE_PLAN_CONTENT),
    "status": "completed",
    "created_at": "2025-06-05T09:00:00+00:00",
}


# async cursor mock

class AsyncCursorMock:
    """mock for motor's async cursor: supports async for and chained methods"""

    def __init__(self, data=None):
        self._data = list(data or [])
        self._index = 0

    def sort(self, key, direction=1):
        self._data.sort(key=lambda d: str(d.get(key, "")), reverse=direction == -1)
        return self

    def skip(self, n):
        self._data = self._data[n:]
        return self

    def limit(self, n):
        self._data = self._data[:n]
        return self

    def __aiter__(self):
        self._index = 0
        return self

    async def __anext__(self):
        if self._index >= len(self._data):
            raise StopAsyncIteration
        item = self._data[self._index]
        self._index += 1
        return item

    async def to_list(self, length=None):
        if length is not None:
            return self._data[:length]
        return self._data


class MockCollection:
    """mock for a motor collection with async methods"""

    def __init__(self, data=None):
        self._data = data or []
        self.inserted = []

    def find(self, query=None, projection=None):
        # basic query filtering
        results = self._data
        if query:
            results = [d for d in results if self._matches(d, query)]
        return AsyncCursorMock([dict(d) for d in results])

    async def find_one(self, query=None, projection=None):
        if not query:
            return dict(self._data[0]) if self._data else None
        for doc in self._data:
            if self._matches(doc, query):
                return dict(doc)
        return None

    async def insert_one(self, doc):
        oid = doc.get("_id", ObjectId())
        doc["_id"] = oid
        self._data.append(doc)
        self.inserted.append(doc)
        result = MagicMock()
        result.inserted_id = oid
        return result

    async def update_one(self, query, update, upsert=False):
        result = MagicMock()
        result.matched_count = 0
        result.modified_count = 0
        for doc in self._data:
            if self._matches(doc, query):
                if "$set" in update:
                    doc.update(update["$set"])
                result.matched_count = 1
                result.modified_count = 1
                break
        return result

    async def delete_one(self, query):
        result = MagicMock()
        result.deleted_count = 0
        for index, doc in enumerate(self._data):
            if self._matches(doc, query):
                del self._data[index]
                result.deleted_count = 1
                break
        return result

    def _matches(self, doc, query):
        """basic mongodb equality matching for tests"""
        return all(doc.get(key) == value for key, value in query.items())


class FailingCollection:
    """collection whose every call fails like an unreachable mongodb"""

    def __init__(self):
        self.calls = 0

    def _fail(self):
        self.calls += 1
        raise ServerSelectionTimeoutError("localhost:27017: [Errno 111] Connection refused")

    def find(self, query=None, projection=None):
        self._fail()

    async def find_one(self, query=None, projection=None):
        self._fail()

    async def insert_one(self, doc):
        self._fail()

    async def update_one(self, query, update, upsert=False):
        self._fail()

    async def delete_one(self, query):
        self._fail()


class MockDatabase:
    """mock database that mimics the Database class"""

    def __init__(self):
        self.users = MockCollection([
            THERAPIST_DOC.copy(),
            OTHER_THERAPIST_DOC.copy(),
        ])
        self.patients = MockCollection([
            SAMPLE_PATIENT.copy(),
            SAMPLE_PATIENT_2.copy(),
        ])
        self.therapy_plans = MockCollection([
            SAMPLE_PLAN.copy(),
            SAMPLE_PLAN_2.copy(),
        ])

    def fail_primary(self):
        """make the record collections unreachable (users stay up so auth works)"""
        self._online = (self.patients, self.therapy_plans)
        self.patients = FailingCollection()
        self.therapy_plans = FailingCollection()

    def restore_primary(self):
        self.patients, self.therapy_plans = self._online

    async def connect(self):
        pass

    async def close(self):
        pass


class StubGenerator(PlanGenerator):
    """generation capability that returns a fixed plan (or fails) without calling gemini"""

    def __init__(self, plan: dict | None = None, fail: bool = False):
        super().__init__(llm=None)
        self.plan = plan or SAMPLE_PLAN_CONTENT
        self.fail = fail
        self.prompts: list[str] = []

    async def generate_structured(self, prompt, schema):
        self.prompts.append(prompt)
        if self.fail:
            raise GenerationFailed("model unavailable")
        return schema.model_validate(self.plan)


@pytest.fixture
def mock_db():
    """create a fresh mock database for each test"""
    return MockDatabase()


@pytest.fixture
def local_store(tmp_path):
    """fresh sqlite-backed fallback store per test"""
    return LocalStore(str(tmp_path / "fallback.db"))


@pytest.fixture
def stub_generator():
    return StubGenerator()


@pytest.fixture
def wizard_registry():
    return WizardRegistry()


def _therapist_dict():
    """return therapist user dict as get_current_user would return"""
    doc = THERAPIST_DOC.copy()
    doc["id"] = str(doc.pop("_id"))
    return doc


def _install_overrides(mock_db, local_store, stub_generator, wizard_registry):
    async def override_get_db():
        return mock_db

    async def override_get_local_store():
        return local_store

    async def override_get_plan_generator():
        return stub_generator

    async def override_get_wizard_registry():
        return wizard_registry

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_local_store] = override_get_local_store
    app.dependency_overrides[get_plan_generator] = override_get_plan_generator
    app.dependency_overrides[get_wizard_registry] = override_get_wizard_registry


@pytest_asyncio.fixture
async def client(mock_db, local_store, stub_generator, wizard_registry):
    """httpx async test client with mocked dependencies, no user override"""
    _install_overrides(mock_db, local_store, stub_generator, wizard_registry)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def therapist_client(mock_db, local_store, stub_generator, wizard_registry):
    """client authenticated as the test therapist"""
    _install_overrides(mock_db, local_store, stub_generator, wizard_registry)

    async def override_get_current_user():
        return _therapist_dict()

    app.dependency_overrides[get_current_user] = override_get_current_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
