"""Process configuration, read once from the environment at startup."""

from __future__ import annotations

from enum import Enum
from typing import Annotated
from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class CorsAuthority(str, Enum):
    """Who owns Access-Control-Allow-Origin/-Credentials on proxied responses."""

    GATE = "gate"
    BACKEND = "backend"


class ProxySettings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    backend_api_url: str = Field(
        default="http://zim-iot-data-api-service.iot-edge",
        description="Base URL every proxied request is sent to.",
    )
    host: str = Field(default="0.0.0.0", min_length=1)
    port: int = Field(default=8080, ge=1, le=65535)
    log_level: str = Field(default="info")

    # Empty means wildcard CORS.
    allowed_origins: Annotated[frozenset[str], NoDecode] = Field(default=frozenset())
    cors_authority: CorsAuthority = CorsAuthority.GATE
    cors_allow_headers: str = Field(default="Content-Type, Authorization", min_length=1)

    backend_timeout_seconds: float = Field(default=30.0, gt=0)
    traffic_log: bool = True

    @field_validator("backend_api_url")
    @classmethod
    def _absolute_url(cls, value: str) -> str:
        parts = urlsplit(value.strip())
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ValueError(f"not an absolute http(s) URL: {value!r}")
        return value.strip()

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if value is None:
            return frozenset()
        if isinstance(value, str):
            value = value.split(",")
        return frozenset(o.strip() for o in value if o and o.strip())
