"""Integration tests for scheduled jobs."""

from datetime import timedelta

import pytest

from blood_credits.models import ProfileDocument
from blood_credits.services import profiles
from blood_credits.services.scheduler import daily_backup, eligibility_digest


@pytest.mark.asyncio
async def test_eligibility_digest(session_pool, donation_event, now):
    async with session_pool() as session:
        await profiles.record_donation(session, "due-today", donation_event, now=now - timedelta(days=56))
        await profiles.record_donation(session, "not-yet", donation_event, now=now - timedelta(days=20))
        await profiles.get_or_create_profile(session, "never-donated")

    eligible = await eligibility_digest(session_pool, today=now.date())

    assert eligible == ["due-today"]


@pytest.mark.asyncio
async def test_daily_backup(tmp_path):
    db_file = tmp_path / "credits.db"
    db_file.write_bytes(b"sqlite")

    backup_path = await daily_backup(db_file)

    assert backup_path.parent == tmp_path / "backups"
    assert backup_path.read_bytes() == b"sqlite"


@pytest.mark.asyncio
async def test_daily_backup_without_database(tmp_path):
    assert await daily_backup(tmp_path / "missing.db") is None


@pytest.mark.asyncio
async def test_eligibility_digest_skips_malformed_documents(session_pool, donation_event, now):
    async with session_pool() as session:
        await profiles.record_donation(session, "due-today", donation_event, now=now - timedelta(days=56))
        session.add(ProfileDocument(user_id="junk", data={"schema_version": 1, "donations": "none"}))
        await session.commit()

    eligible = await eligibility_digest(session_pool, today=now.date())

    assert eligible == ["due-today"]
