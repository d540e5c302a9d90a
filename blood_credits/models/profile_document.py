from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from blood_credits.utils.time import utc_now


class ProfileDocument(SQLModel, table=True):
    __tablename__ = "profile_document"

    user_id: str = Field(primary_key=True)
    data: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    # Copied from the document on every write so the leaderboard can order by it
    total_credits: int = Field(default=0, index=True)
    # Optimistic concurrency: bumped on every write, checked before update
    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
