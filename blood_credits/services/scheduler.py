import logging
import shutil
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import select

from blood_credits.config import settings
from blood_credits.db import SessionLocal
from blood_credits.exceptions import ProfileDecodeError
from blood_credits.models import ProfileDocument
from blood_credits.services.profile_codec import decode_profile
from blood_credits.services.rewards import next_eligible_at
from blood_credits.utils.time import utc_now

logger = logging.getLogger(__name__)


async def eligibility_digest(
    session_pool: async_sessionmaker = SessionLocal,
    today: Optional[date] = None,
) -> list[str]:
    """Donors whose 56-day waiting period ends today.

    Only logs the count; delivering reminders is left to whoever consumes
    the returned ids.
    """
    today = today or utc_now().date()
    eligible: list[str] = []
    async with session_pool() as session:
        docs = (await session.execute(select(ProfileDocument))).scalars().all()
        for doc in docs:
            try:
                profile = decode_profile(doc.data)
            except ProfileDecodeError:
                logger.warning("eligibility digest: undecodable profile user=%s", doc.user_id)
                continue
            eligible_at = next_eligible_at(profile)
            if eligible_at is not None and eligible_at.date() == today:
                eligible.append(doc.user_id)

    logger.info("eligibility digest %s: %d donor(s) can donate again", today.isoformat(), len(eligible))
    return eligible


async def daily_backup(db_path: Optional[Path] = None) -> Optional[Path]:
    db_path = db_path or settings.DB_PATH
    if not db_path.exists():
        logger.warning("backup skipped: %s does not exist", db_path)
        return None
    backup_dir = db_path.parent / "backups"
    backup_dir.mkdir(exist_ok=True)
    backup_path = backup_dir / f"{db_path.name}_{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}"
    shutil.copy(db_path, backup_path)
    logger.info("database backed up to %s", backup_path)
    return backup_path


def schedule_jobs() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone=settings.SCHEDULER_TIMEZONE)
    scheduler.add_job(daily_backup, "cron", hour=3, minute=0)
    # morning digest of donors who may donate again
    scheduler.add_job(eligibility_digest, "cron", hour=9, minute=0)
    scheduler.start()
    return scheduler
