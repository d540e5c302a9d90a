"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
import tempfile
from pathlib import Path

# Module-level engine in blood_credits.db must never touch the user's real database
os.environ.setdefault("DB_PATH", str(Path(tempfile.gettempdir()) / "blood_credits_test.db"))
os.environ.setdefault("WELCOME_CREDITS", "25")
os.environ.setdefault("ENFORCE_DONATION_INTERVAL", "false")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from blood_credits.db import init_db
from blood_credits.models.credits import BloodType, DonationEvent


@pytest.fixture
def now():
    """Fixed reference moment so day arithmetic is deterministic."""
    return datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def donation_event():
    """Non-urgent O+ donation (no rare-blood badge)."""
    return DonationEvent(
        blood_type=BloodType.O_POS,
        location="Pune",
        facility_name="City Blood Bank",
    )


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_pool(db_engine):
    return async_sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_pool):
    async with session_pool() as session:
        yield session
