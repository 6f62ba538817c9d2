"""
Core settings and environment variables for the complaint engine.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables.
    Create a .env file in the root directory to override these.
    """

    # Application
    APP_NAME: str = "Complaint Engine"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Escalation bands (days open): <= yellow edge is green, <= red edge is yellow, beyond is red
    ESCALATION_YELLOW_AFTER_DAYS: int = 3
    ESCALATION_RED_AFTER_DAYS: int = 7

    # Calendar used for "resolved today" (IANA zone name)
    STATS_TIMEZONE: str = "UTC"

    # Default zone registry, comma-separated zone identifiers
    ZONE_IDS: str = "downtown,residential,commercial,industrial,suburban"

    # Dashboard extras
    BOTTLENECK_DAYS: int = 7
    TRENDING_LIMIT: int = 5
    TOP_UPVOTED_LIMIT: int = 10
    TREND_WINDOW_DAYS: int = 30

    @property
    def zone_ids(self) -> List[str]:
        return [z.strip() for z in self.ZONE_IDS.split(",") if z.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"  # Tolerate unrelated env vars shared with the host application


# Global settings instance
settings = Settings()
