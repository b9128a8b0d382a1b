from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class DriverSpec(BaseModel):
    """
    Fixed-delta driver used by batch sessions (TickDriver).
    """
    delta_seconds: float = Field(1.0 / 60.0, gt=0, description="Frame delta fed to tick()")
    max_ticks: int = Field(100_000, ge=1, description="Give up on a round after this many ticks")


class SessionSpec(BaseModel):
    """
    Construction options for one engine + session.

    This is what gets persisted to the session's config.json.
    """
    schema_version: int = Field(default=1, description="SessionSpec schema version")

    created_at_utc: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Engine options
    client_seed: Optional[str] = Field(default=None, description="Seed string; None/empty -> random")
    start_balance: float = Field(default=1000.0, ge=0)
    start_bet: float = Field(default=10.0, ge=1)
    auto_cash: float = Field(default=0.0, ge=0, description="Default auto-cashout; 0 disables")

    history_limit: int = Field(default=20, ge=1)
    min_tick_seconds: float = Field(default=0.001, gt=0)
    max_tick_seconds: float = Field(default=0.05, gt=0)

    driver: DriverSpec = Field(default_factory=DriverSpec)
    tags: dict[str, str] = Field(default_factory=dict, description="Arbitrary session tags")

    @model_validator(mode="after")
    def _validate_ranges(self) -> "SessionSpec":
        if self.min_tick_seconds > self.max_tick_seconds:
            raise ValueError("min_tick_seconds must be <= max_tick_seconds")
        if 0 < self.auto_cash < 1:
            raise ValueError("auto_cash must be 0 (disabled) or >= 1")
        return self

    def to_canonical_dict(self) -> dict:
        """
        Stable JSON-compatible dict (datetime rendered as ISO UTC).
        """
        d = self.model_dump()
        d["created_at_utc"] = self.created_at_utc.astimezone(timezone.utc).isoformat()
        return d

    def config_hash(self) -> str:
        payload = self.to_canonical_dict()
        blob = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        return hashlib.sha256(blob.encode("utf-8")).hexdigest()
