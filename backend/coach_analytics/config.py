# backend configuration
# loads env vars for mongodb, cors, window alignment and client status thresholds

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# load .env from project root
load_dotenv(Path(__file__).parent.parent.parent / ".env")


class Settings(BaseSettings):
    # mongodb
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "coach_analytics_db")

    # cors
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:8081")

    # window alignment
    DEFAULT_TIMEZONE: str = os.getenv("DEFAULT_TIMEZONE", "UTC")
    WEEK_START_DAY: int = 0  # monday

    # client status thresholds (adherence is a 0-1 fraction)
    ON_TRACK_ADHERENCE: float = 0.8
    NEEDS_SUPPORT_ADHERENCE: float = 0.5
    AT_RISK_INACTIVE_DAYS: int = 3

    # attention list
    MISSING_CHECKIN_DAYS: int = 7
    ATTENTION_LIMIT: int = 50

    # dashboard / profile feeds
    DAILY_ACTIVITY_DAYS: int = 7
    ACTIVITY_TIMELINE_LIMIT: int = 20

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
