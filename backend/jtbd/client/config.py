"""
Client configuration
"""
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Settings for talking to the JTBD service"""

    base_url: str = Field(default="http://localhost:8000", description="Service base URL")
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Single bounded wait per request"
    )
    create_max_attempts: int = Field(default=3, ge=1, le=10, description="Attempts per create")
    retry_base_delay_seconds: float = Field(default=0.5, ge=0, description="First backoff delay")
    retry_max_delay_seconds: float = Field(default=4.0, ge=0, description="Backoff cap")

    model_config = SettingsConfigDict(
        env_prefix="JTBD_CLIENT_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True
    )

    @model_validator(mode="after")
    def check_delays(self):
        if self.retry_max_delay_seconds < self.retry_base_delay_seconds:
            raise ValueError("retry_max_delay_seconds must be >= retry_base_delay_seconds")
        return self

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based): base * 2**(attempt-1), capped"""
        return min(self.retry_base_delay_seconds * (2 ** (attempt - 1)), self.retry_max_delay_seconds)


@lru_cache()
def get_client_settings() -> ClientSettings:
    """Get cached client settings instance"""
    return ClientSettings()
