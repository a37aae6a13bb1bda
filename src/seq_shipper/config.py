from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from .levels import LogEventLevel


class Settings(BaseSettings):
    """Shipper configuration, read from SEQ_SHIPPER_* env vars or .env."""

    SERVER_URL: str
    BUFFER_BASE_FILENAME: str
    API_KEY: Optional[str] = None
    BATCH_POSTING_LIMIT: int = Field(1000, gt=0)
    PERIOD_SECONDS: float = Field(2.0, gt=0)
    EVENT_BODY_LIMIT_BYTES: Optional[int] = Field(None, gt=0)
    # Initial level for a shared level switch; unset means no switch until
    # the server first reports a level
    CONTROL_LEVEL_SWITCH: Optional[str] = None
    HTTP_TIMEOUT_SECONDS: Optional[float] = Field(None, gt=0)

    @property
    def control_level(self) -> Optional[LogEventLevel]:
        if not self.CONTROL_LEVEL_SWITCH:
            return None
        return LogEventLevel.parse(self.CONTROL_LEVEL_SWITCH)

    class Config:
        env_prefix = "SEQ_SHIPPER_"
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
