from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DB_PATH: Path = Path.home() / "blood_credits.db"
    # Port on which the HTTP API listens
    LOCAL_WEBAPP_PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    # Credits granted once when a profile is created lazily (0 disables)
    WELCOME_CREDITS: int = 25
    # Upper bound for a single read-modify-write against the profile store
    STORE_TIMEOUT_SECONDS: float = 5.0
    # How many times a version conflict is retried from a fresh read
    MAX_WRITE_RETRIES: int = 3
    LEADERBOARD_LIMIT: int = 50
    # When enabled, donations recorded less than 56 days apart are rejected.
    # Off by default: the mobile app only displays eligibility.
    ENFORCE_DONATION_INTERVAL: bool = False

    SCHEDULER_TIMEZONE: str = "UTC"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
