from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from blood_credits.utils.time import utc_now


class UserAccount(SQLModel, table=True):
    __tablename__ = "user_account"

    user_id: str = Field(primary_key=True)
    display_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
