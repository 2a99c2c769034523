"""Central configuration: loads .env and exposes typed host settings."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from composite_engine.contracts import TradeStyle

logger = logging.getLogger(__name__)

# Built-in profile names (see composite_engine.profiles.PROFILES)
KNOWN_PROFILES = {"default", "conservative", "aggressive"}

# Resolve project root (parent of composite_engine/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_PATH = PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    # --- Profile selection ---
    active_profile: str = "default"
    profile_file: str = ""  # optional YAML profile; overrides active_profile when set
    trade_style: TradeStyle = TradeStyle.DAY

    # --- Run gate ---
    market_hours_only: bool = True
    regular_session_minutes: int = Field(default=390, gt=0)  # 09:30-16:00 ET

    # --- Execution ---
    max_workers: int = Field(default=4, ge=1)

    # --- Logging ---
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _validate_profile_name(self) -> "Settings":
        """Warn on unrecognized profile names at startup."""
        if not self.profile_file and self.active_profile not in KNOWN_PROFILES:
            logger.warning(
                "Unrecognized profile '%s' in active_profile; evaluation will fail. "
                "Known profiles: %s",
                self.active_profile, ", ".join(sorted(KNOWN_PROFILES)),
            )
        return self

    model_config = {
        "env_prefix": "COMPOSITE_",
        "env_file": str(ENV_PATH),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
