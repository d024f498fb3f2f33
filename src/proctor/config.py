from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProctorSettings(BaseSettings):
    """Client-side session settings. Every field reads PROCTOR_<NAME> from the env or .env."""

    api_base_url: str = Field(default="http://localhost:8000")
    # Submission ladder
    primary_timeout_seconds: float = Field(default=10.0, gt=0)
    secondary_timeout_seconds: float = Field(default=5.0, gt=0)
    # Integrity policy
    max_violations: int = Field(default=3, ge=1)
    focus_grace_seconds: float = Field(default=1.0, ge=0)
    # Clock
    tick_interval_seconds: float = Field(default=1.0, gt=0)
    # Local fallback store
    fallback_db_url: str = Field(default="sqlite:///./proctor-fallback.db")

    model_config = SettingsConfigDict(env_prefix="PROCTOR_", env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def _secondary_is_shorter(self) -> "ProctorSettings":
        if self.secondary_timeout_seconds > self.primary_timeout_seconds:
            raise ValueError("secondary timeout must not exceed primary timeout")
        return self
