import asyncio
import logging
import sys
from pathlib import Path

from blood_credits.config import settings
from blood_credits.db import SessionLocal, init_db
from blood_credits.services.scheduler import schedule_jobs
from blood_credits.webapp.server import start_webapp_server


async def main():
    # ---------- logging configuration ----------
    # Create ./logs directory next to this file (if it doesn't exist)
    logs_dir = Path(__file__).resolve().parent / "logs"
    logs_dir.mkdir(exist_ok=True)
    log_file = logs_dir / "blood_credits.log"

    # Configure root logger to write both to console *and* to file
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),  # console
            logging.FileHandler(log_file, encoding="utf-8"),  # file
        ],
        force=True,
    )
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.INFO)

    logging.info("Blood credits service starting…")

    await init_db()

    scheduler = schedule_jobs()
    try:
        await start_webapp_server(SessionLocal)
    finally:
        scheduler.shutdown(wait=False)


def run():
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass


if __name__ == "__main__":
    run()
