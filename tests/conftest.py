"""
Pytest configuration and shared fixtures.

Settings are read at import time, so the environment is prepared before any
vetdirectory module is imported.
"""

import os
import tempfile
from datetime import date, timedelta
from pathlib import Path

_DB_DIR = Path(tempfile.mkdtemp(prefix="vetdirectory-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR / 'test.db'}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENV"] = "test"
os.environ["REJECT_PAST_BOOKINGS"] = "true"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from vetdirectory.core.db import async_session_maker, engine  # noqa: E402
from vetdirectory.core.security import create_access_token  # noqa: E402
from vetdirectory.main import app  # noqa: E402
from vetdirectory.models.clinic import AvailabilityRule, Clinic  # noqa: E402

WEEKDAYS_9_TO_10 = [
    {"day_of_week": dow, "start_time": "09:00", "end_time": "10:00", "is_available": True}
    for dow in range(1, 6)
]


def _future_date(day_of_week: int, weeks_ahead: int = 1) -> date:
    """A date at least `weeks_ahead` weeks from today falling on day_of_week (0 = Sunday)."""
    d = date.today() + timedelta(weeks=weeks_ahead)
    while d.isoweekday() % 7 != day_of_week:
        d += timedelta(days=1)
    return d


@pytest.fixture
def future_date():
    return _future_date


@pytest_asyncio.fixture
async def db():
    """Fresh schema for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def session(db):
    async with async_session_maker() as s:
        yield s


@pytest_asyncio.fixture
async def client(db):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def admin_headers():
    token = create_access_token("admin-1", role="admin")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def make_clinic(db):
    """Insert a clinic with availability rules and return it."""
    counter = {"n": 0}

    async def _make(availability=None, **overrides) -> Clinic:
        counter["n"] += 1
        fields = {
            "name": f"Clinic {counter['n']}",
            "type": "private",
            "location": "colombo",
            "address": f"{counter['n']} Galle Road, Colombo",
            "phone": "011 234 5678",
            "email": f"clinic{counter['n']}@example.lk",
        }
        fields.update(overrides)
        rules = WEEKDAYS_9_TO_10 if availability is None else availability
        async with async_session_maker() as s:
            clinic = Clinic(**fields)
            s.add(clinic)
            await s.flush()
            s.add_all(AvailabilityRule(clinic_id=clinic.id, **r) for r in rules)
            await s.commit()
            await s.refresh(clinic)
        return clinic

    return _make
