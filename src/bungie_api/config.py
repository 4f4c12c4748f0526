"""Configuration for the Bungie API bindings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

VERSION = "0.1.0"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BUNGIE_", case_sensitive=False)

    api_key: str = Field(default="")
    api_base_url: str = Field(default="https://www.bungie.net/Platform")
    content_base_url: str = Field(default="https://www.bungie.net")
    timeout_seconds: float = Field(default=20)
    verify_ssl: bool = Field(default=True)
    user_agent: str = Field(default=f"bungie-api-bindings/{VERSION}")

    locale: str = Field(default="en")

    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
