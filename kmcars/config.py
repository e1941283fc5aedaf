"""Application settings, loaded from the environment and a .env file."""

import logging
import sys
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .catalog import CACHE_TTL_SECONDS, FIPE_API_URL


class Settings(BaseSettings):
    """
    Runtime configuration.

    The Supabase endpoint and key are required when the Supabase backend is
    selected; constructing Settings without them raises, so a misconfigured
    process stops at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None

    KMCARS_BACKEND: Literal["supabase", "yaml"] = "supabase"
    KMCARS_DATA_FILE: Path = Path("kmcars.yaml")
    KMCARS_EMAIL: Optional[str] = None
    KMCARS_PASSWORD: Optional[str] = None

    FIPE_API_URL: str = FIPE_API_URL
    CATALOG_TTL_SECONDS: int = CACHE_TTL_SECONDS

    DUE_SOON_DAYS: int = 30
    DUE_SOON_KM: int = 1000

    SECRET_KEY: str = "dev-secret-key-change-in-prod"
    LOG_LEVEL: str = "INFO"

    @model_validator(mode="after")
    def check_backend_credentials(self) -> "Settings":
        if self.KMCARS_BACKEND == "supabase" and not (
            self.SUPABASE_URL and self.SUPABASE_ANON_KEY
        ):
            raise ValueError(
                "SUPABASE_URL and SUPABASE_ANON_KEY must be set "
                "(add them to the environment or a .env file)"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
