"""Configuration schema for the AppPanel SDK."""

from __future__ import annotations

from enum import Enum
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

FALLBACK_BASE_URL = "https://api.apppanel.io"


class Environment(str, Enum):
    """Which backend deployment the SDK talks to."""

    RELEASE = "release"
    RELEASE_CANDIDATE = "releaseCandidate"
    DEVELOPER = "developer"
    CUSTOM = "custom"


_HOST_DOMAINS = {
    Environment.RELEASE: "apppanel.io",
    Environment.RELEASE_CANDIDATE: "apppanelcanary.io",
    Environment.DEVELOPER: "apppanel.dev",
}


class Base(BaseModel):
    """Base model that accepts both camelCase and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Configuration(Base):
    """Immutable SDK configuration. Replace it only through a full reset."""

    api_key: str = Field(min_length=1)
    environment: Environment = Environment.RELEASE
    custom_url: str | None = None
    debug_logging: bool = False
    auto_initialize_push: bool = True
    session_timeout: float = Field(default=3600.0, gt=0)
    max_retry_attempts: int = Field(default=3, ge=0)
    request_timeout: float = Field(default=30.0, gt=0)
    resource_timeout: float = Field(default=60.0, gt=0)

    @field_validator("api_key")
    @classmethod
    def _strip_api_key(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("api_key_empty")
        return value

    @model_validator(mode="after")
    def _check_custom_url(self) -> "Configuration":
        if self.environment is Environment.CUSTOM and not (self.custom_url or "").strip():
            raise ValueError("custom_url_required")
        return self

    @property
    def base_url(self) -> str:
        if self.environment is Environment.CUSTOM:
            domain = (self.custom_url or "").strip()
            if urlsplit(domain).scheme:
                return domain.rstrip("/")
            host = domain.strip("/")
            return f"https://{host}" if host else FALLBACK_BASE_URL
        return f"https://api.{_HOST_DOMAINS[self.environment]}"
