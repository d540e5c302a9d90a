from datetime import datetime

from sqlmodel import Field, SQLModel

from blood_credits.utils.time import utc_now


class ProcessedEvent(SQLModel, table=True):
    __tablename__ = "processed_event"

    idempotency_key: str = Field(primary_key=True)
    user_id: str = Field(index=True)
    kind: str  # donation | help_response | referral
    created_at: datetime = Field(default_factory=utc_now)
