# shared fixtures for backend tests
# provides record builders, a fixed clock, a mock motor db and an httpx test client

import pytest
import pytest_asyncio
from datetime import date, datetime, timedelta, timezone
from bson import ObjectId

from httpx import AsyncClient, ASGITransport

from coach_analytics.main import app
from coach_analytics.models.metrics import ClientMetrics
from coach_analytics.models.records import (
    ActivityEntry,
    Client,
    ClientRecords,
    DietLogEntry,
    Doctor,
    MealPlan,
    PlanMilestone,
    WeightLog,
)
from coach_analytics.services.db import get_db
from coach_analytics.services.record_source import RecordSource


# fixed clock, thursday 2025-06-12 15:00 utc; the monday week runs 06-09 .. 06-16
NOW = datetime(2025, 6, 12, 15, 0, tzinfo=timezone.utc)
WEEK_START = datetime(2025, 6, 9, tzinfo=timezone.utc)

# test ids (fixed hex so the module can be imported twice safely)
DOCTOR_ID = "665f1c2a9b1e8a0012345601"
CLIENT_ID = "665f1c2a9b1e8a0012345602"
CLIENT_2_ID = "665f1c2a9b1e8a0012345603"
CLIENT_3_ID = "665f1c2a9b1e8a0012345604"


# record builders for unit tests

def make_client(client_id=CLIENT_ID, **overrides) -> Client:
    data = {
        "id": client_id,
        "doctor_id": DOCTOR_ID,
        "first_name": "Maya",
        "last_name": "Patel",
        "email": "maya.patel@email.com",
        "starting_weight": 82.0,
        "current_weight": 80.0,
        "target_weight": 72.0,
    }
    data.update(overrides)
    return Client(**data)


def diet_log(ts: datetime, client_id=CLIENT_ID, calories=450.0, completed=True, log_id=None) -> DietLogEntry:
    return DietLogEntry(
        id=log_id or f"diet_{client_id[-2:]}_{ts.isoformat()}",
        client_id=client_id,
        logged_at=ts,
        meal_type="lunch",
        calories=calories,
        completed=completed,
    )


def activity(ts: datetime, client_id=CLIENT_ID, minutes=30.0, kind="walking") -> ActivityEntry:
    return ActivityEntry(
        id=f"act_{client_id[-2:]}_{ts.isoformat()}",
        client_id=client_id,
        logged_at=ts,
        activity_type=kind,
        duration_minutes=minutes,
        calories_burned=minutes * 5,
    )


def weight(ts: datetime, value: float, client_id=CLIENT_ID, feeling=None) -> WeightLog:
    return WeightLog(
        id=f"wt_{client_id[-2:]}_{ts.isoformat()}",
        client_id=client_id,
        logged_at=ts,
        weight=value,
        feeling=feeling,
    )


def meal_plan(client_id=CLIENT_ID, status="active", milestones=(), **overrides) -> MealPlan:
    data = {
        "id": f"plan_{client_id[-2:]}",
        "client_id": client_id,
        "status": status,
        "start_date": date(2025, 6, 1),
        "daily_calorie_target": 1800.0,
        "milestones": tuple(milestones),
        "created_at": datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return MealPlan(**data)


def milestone(title: str, due: date, completed=False) -> PlanMilestone:
    return PlanMilestone(title=title, due_date=due, completed=completed)


def records_for(client=None, plans=(), diet=(), activities=(), weights=()) -> ClientRecords:
    return ClientRecords(
        client=client,
        meal_plans=tuple(plans),
        diet_logs=tuple(diet),
        activities=tuple(activities),
        weight_logs=tuple(weights),
    )


def day(n: int, hour: int = 12) -> datetime:
    """timestamp on day n (1-based) of the fixed week"""
    return WEEK_START + timedelta(days=n - 1, hours=hour)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def source():
    """fresh in-process record source"""
    return RecordSource()


@pytest.fixture
def doctor():
    return Doctor(id=DOCTOR_ID, name="Dr. Lena Ortiz", email="lena.ortiz@clinic.com")


# mongodb documents (as they'd appear from the store), relative to the real clock
# so router tests that run against datetime.now stay inside their windows

def _store_docs():
    real_now = datetime.now(timezone.utc)
    today = real_now.replace(hour=0, minute=0, second=0, microsecond=0)
    doctor_doc = {
        "_id": ObjectId(DOCTOR_ID),
        "name": "Dr. Lena Ortiz",
        "email": "lena.ortiz@clinic.com",
    }
    client_docs = [
        {
            "_id": ObjectId(CLIENT_ID),
            "doctor_id": DOCTOR_ID,
            "first_name": "Maya",
            "last_name": "Patel",
            "email": "maya.patel@email.com",
            "starting_weight": 82.0,
            "current_weight": 80.0,
            "target_weight": 72.0,
            "subscription_status": "active",
        },
        {
            "_id": ObjectId(CLIENT_2_ID),
            "doctor_id": DOCTOR_ID,
            "first_name": "Tom",
            "last_name": "Berg",
            "email": "tom.berg@email.com",
            "subscription_status": "trial",
        },
    ]
    plan_docs = [
        {
            "_id": ObjectId(),
            "client_id": CLIENT_ID,
            "status": "active",
            "start_date": (today - timedelta(days=20)).date().isoformat(),
            "daily_calorie_target": 1800,
            "milestones": [
                {"title": "Lose 2 kg", "due_date": (today + timedelta(days=10)).date().isoformat(), "completed": False},
            ],
            "created_at": today - timedelta(days=20),
        },
    ]
    diet_docs = [
        {
            "_id": ObjectId(),
            "client_id": CLIENT_ID,
            "logged_at": today - timedelta(days=d) + timedelta(hours=1),
            "meal_type": "breakfast",
            "calories": 400,
            "completed": True,
        }
        for d in range(1, 4)
    ]
    activity_docs = [
        {
            "_id": ObjectId(),
            "client_id": CLIENT_ID,
            "logged_at": today - timedelta(days=2) + timedelta(hours=7),
            "activity_type": "running",
            "duration_minutes": 25,
            "calories_burned": 240,
        },
    ]
    weight_docs = [
        {
            "_id": ObjectId(),
            "client_id": CLIENT_ID,
            "logged_at": today - timedelta(days=d) + timedelta(hours=6),
            "weight": w,
            "unit": "kg",
            "feeling": "good",
        }
        for d, w in ((10, 81.0), (2, 80.0))
    ]
    return doctor_doc, client_docs, plan_docs, diet_docs, activity_docs, weight_docs


# async cursor mock

class AsyncCursorMock:
    """mock for motor's async cursor, supports async for and chained methods"""

    def __init__(self, data=None):
        self._data = data or []
        self._index = 0

    def sort(self, *args, **kwargs):
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
        self.queries = []

    def find(self, query=None, projection=None):
        self.queries.append(query)
        results = self._data
        if query:
            results = [d for d in results if self._matches(d, query)]
        return AsyncCursorMock(results)

    async def find_one(self, query=None, projection=None):
        self.queries.append(query)
        if not query:
            return self._data[0] if self._data else None
        for doc in self._data:
            if self._matches(doc, query):
                return doc
        return None

    async def count_documents(self, query=None):
        if not query:
            return len(self._data)
        return len([d for d in self._data if self._matches(d, query)])

    def _matches(self, doc, query):
        """basic mongodb query matching for tests"""
        for key, value in query.items():
            doc_val = doc.get(key)
            if isinstance(value, dict):
                if "$in" in value:
                    if doc_val not in value["$in"]:
                        return False
                elif "$gte" in value:
                    if doc_val is None or doc_val < value["$gte"]:
                        return False
            elif doc_val != value:
                return False
        return True


class MockDatabase:
    """mock database that mimics the Database class"""

    def __init__(self):
        doctor_doc, client_docs, plan_docs, diet_docs, activity_docs, weight_docs = _store_docs()
        self.doctors = MockCollection([doctor_doc])
        self.clients = MockCollection(client_docs)
        self.meal_plans = MockCollection(plan_docs)
        self.diet_logs = MockCollection(diet_docs)
        self.activity_entries = MockCollection(activity_docs)
        self.weight_logs = MockCollection(weight_docs)

    async def connect(self):
        pass

    async def close(self):
        pass


@pytest.fixture
def mock_db():
    """create a fresh mock database for each test"""
    return MockDatabase()


@pytest_asyncio.fixture
async def client(mock_db):
    """httpx async test client with mocked db"""
    async def override_get_db():
        return mock_db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def blank_metrics(client_id=CLIENT_ID, **overrides) -> ClientMetrics:
    """metrics for a client with nothing logged in the fixed week"""
    data = {
        "client_id": client_id,
        "period": "week",
        "window_start": WEEK_START,
        "window_end": WEEK_START + timedelta(days=7),
        "days_in_window": 7,
        "days_elapsed": 4,
    }
    data.update(overrides)
    return ClientMetrics(**data)
