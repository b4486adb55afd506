"""Shared fixtures: per-test SQLite database, seeded event data and an ASGI client."""

from __future__ import annotations

import os

# The app engine is never used in tests, but must not point at Postgres on import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from main import app
from evacuation_api.db import get_db
from evacuation_api.models import (
    Barangay, Base, Disaster, DisasterEvacuationEvent, EvacuationCenter, EvacuationCenterRoom,
)
from evacuation_api.security import create_access_token
from evacuation_api.services.search_cache import TTLSearchCache, get_search_cache

API = "/api/v1/evacuees"


# ── Fixtures ─────────────────────────────────────────────────────────────

@pytest.fixture
async def session_factory(tmp_path):
    """Fresh SQLite database (schema from the models) for each test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'evacuation.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest.fixture
def search_cache():
    return TTLSearchCache(ttl_seconds=300)


@pytest.fixture
async def client(session_factory, search_cache):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_search_cache] = lambda: search_cache
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = create_access_token(sub="1", role="camp_manager")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def seed(session_factory):
    """Two barangays, one disaster and two events (A and B) at different centers."""
    now = datetime.now(timezone.utc)
    async with session_factory() as db:
        gogon = Barangay(name="Gogon")
        rawis = Barangay(name="Rawis")
        db.add_all([gogon, rawis])
        await db.flush()

        disaster = Disaster(
            disaster_name="Typhoon Kristine",
            disaster_type="Typhoon",
            disaster_start_date=now - timedelta(days=2),
        )
        center_a = EvacuationCenter(name="Gogon Central School", barangay_id=gogon.id, category="School", total_capacity=5)
        center_b = EvacuationCenter(name="Rawis Barangay Hall", barangay_id=rawis.id, category="Barangay Hall", total_capacity=10)
        db.add_all([disaster, center_a, center_b])
        await db.flush()

        room_1 = EvacuationCenterRoom(evacuation_center_id=center_a.id, room_name="Room 1", individual_room_capacity=2)
        room_2 = EvacuationCenterRoom(evacuation_center_id=center_a.id, room_name="Room 2", individual_room_capacity=3)
        hall = EvacuationCenterRoom(evacuation_center_id=center_b.id, room_name="Hall", individual_room_capacity=10)
        event_a = DisasterEvacuationEvent(
            disaster_id=disaster.id, evacuation_center_id=center_a.id, evacuation_start_date=now - timedelta(days=1),
        )
        event_b = DisasterEvacuationEvent(
            disaster_id=disaster.id, evacuation_center_id=center_b.id, evacuation_start_date=now - timedelta(days=1),
        )
        db.add_all([room_1, room_2, hall, event_a, event_b])
        await db.commit()

        return SimpleNamespace(
            gogon_id=gogon.id,
            rawis_id=rawis.id,
            disaster_id=disaster.id,
            disaster_start=now - timedelta(days=2),
            center_a_id=center_a.id,
            center_b_id=center_b.id,
            room_1_id=room_1.id,
            room_2_id=room_2.id,
            hall_id=hall.id,
            event_a=event_a.id,
            event_b=event_b.id,
        )


@pytest.fixture
def register(client, auth_headers, seed):
    """POST a registration; defaults create a new head of family in event A."""
    async def _register(**overrides):
        payload = {
            "first_name": "Juan",
            "middle_name": "Santos",
            "last_name": "Dela Cruz",
            "birthdate": "1985-03-14",
            "sex": "Male",
            "barangay_of_origin": seed.gogon_id,
            "relationship_to_family_head": "Head",
            "disaster_evacuation_event_id": seed.event_a,
        }
        payload.update(overrides)
        return await client.post(API, json=payload, headers=auth_headers)
    return _register


@pytest.fixture
def count_rows(session_factory):
    async def _count(model, *where):
        async with session_factory() as db:
            return await db.scalar(select(func.count()).select_from(model).where(*where))
    return _count


def future_iso(hours: int = 1) -> str:
    return (datetime.now(timezone.utc) + timedelta(hours=hours)).isoformat()


def past_iso(hours: int = 1) -> str:
    return (datetime.now(timezone.utc) - timedelta(hours=hours)).isoformat()
