from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Process-wide configuration.

    Session defaults here only seed new SessionSpecs; a session's own
    SessionSpec (persisted in its config.json) is what the engine is built from.
    """

    model_config = SettingsConfigDict(
        env_prefix="CRASHROUND_",
        env_file=".env",
        extra="ignore",
    )

    # ---- Environment -------------------------------------------------

    env: Literal["local", "staging", "prod"] = "local"

    # ---- Logging -----------------------------------------------------

    log_level: str = "INFO"
    json_logs: bool = True

    # ---- Sessions ----------------------------------------------------

    sessions_dir: Path = Field(
        default=Path("sessions"),
        description="Root directory for session artifacts",
    )

    # None -> every session generates its own random seed
    default_client_seed: Optional[str] = Field(
        default=None,
        description="Client seed used when a session does not provide one",
    )

    start_balance: float = Field(default=1000.0, ge=0)
    start_bet: float = Field(default=10.0, ge=1)
    auto_cash: float = Field(default=0.0, ge=0, description="0 disables auto-cashout")


settings = AppSettings()
