from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # App
    APP_NAME: str = "DailyRank"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Database
    DATABASE_URL: str = "sqlite:///./dailyrank.db"

    # JWT (tokens are issued by the account service, verified here)
    SECRET_KEY: str = "change-me-in-production-super-secret-key"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 60

    # Calendar policy: every day boundary is computed in this IANA timezone
    TIMEZONE: str = "UTC"

    # Rating
    BASE_RATING: int = 1000
    MIN_RATING: int = 400
    MAX_RATING: int = 2500
    DECAY_PER_SKIPPED_DAY: int = 10
    RELATIVE_WINDOW: int = 7
    RELATIVE_FACTOR: float = 0.1
    DEFAULT_STUDY_GOAL_HOURS: float = 2.0

    # History pagination
    HISTORY_PAGE_SIZE: int = 20

    class Config:
        # Search .env in current dir AND backend/ dir
        env_file = (".env", "backend/.env", "../.env")
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
