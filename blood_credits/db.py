import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from blood_credits.config import settings

logger = logging.getLogger(__name__)

# Create an async engine
engine = create_async_engine(f"sqlite+aiosqlite:///{settings.DB_PATH}")

# Create a session factory
SessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
)


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Creates tables if they don't exist and adds columns introduced later."""
    # Ensure all models are imported so SQLModel metadata includes them
    import blood_credits.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

        # --- lightweight migration: profile_document columns added after first release ---
        res = await conn.execute(text("PRAGMA table_info(profile_document);"))
        columns = [row[1] for row in res.fetchall()]
        missing_alters: list[str] = []
        if "total_credits" not in columns:
            missing_alters.append("ALTER TABLE profile_document ADD COLUMN total_credits INTEGER DEFAULT 0;")
        if "version" not in columns:
            missing_alters.append("ALTER TABLE profile_document ADD COLUMN version INTEGER DEFAULT 1;")

        for stmt in missing_alters:
            logger.info("db migration: %s", stmt)
            await conn.execute(text(stmt))
        # committed when the context exits
