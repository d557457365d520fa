from __future__ import annotations

import os
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from utils import mask_secret


class Configuration(BaseModel):
    # Hosted backend (PostgREST)
    supabase_url: Optional[str] = Field(default=None)
    supabase_anon_key: Optional[str] = Field(default=None)
    supabase_timeout: int = Field(default=15)

    # Nearby recommendations
    nearby_default_radius_km: float = Field(default=5.0)
    nearby_radius_choices: List[float] = Field(default_factory=lambda: [1.0, 5.0, 10.0, 25.0])
    nearby_max_results: int = Field(default=4)

    @field_validator("nearby_radius_choices", mode="before")
    @classmethod
    def _split_choices(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [float(part) for part in value.split(",") if part.strip()]
        return value

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "supabase_url": os.getenv("SUPABASE_URL"),
            "supabase_anon_key": os.getenv("SUPABASE_ANON_KEY"),
            "supabase_timeout": os.getenv("SUPABASE_TIMEOUT"),
            "nearby_default_radius_km": os.getenv("NEARBY_DEFAULT_RADIUS_KM"),
            "nearby_radius_choices": os.getenv("NEARBY_RADIUS_CHOICES"),
            "nearby_max_results": os.getenv("NEARBY_MAX_RESULTS"),
        }

        for k, v in env_map.items():
            if v is None:
                continue
            raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    def require_supabase(self) -> None:
        if not self.supabase_url:
            raise ValueError("SUPABASE_URL is required")
        if not self.supabase_anon_key:
            raise ValueError("SUPABASE_ANON_KEY is required")

    def resolve_radius(self, radius_km: Optional[float]) -> float:
        """Return the requested radius, or the default; reject radii outside the offered choices."""
        if radius_km is None:
            return self.nearby_default_radius_km
        radius = float(radius_km)
        if radius not in self.nearby_radius_choices:
            choices = ", ".join(f"{c:g}" for c in self.nearby_radius_choices)
            raise ValueError(f"radius_km must be one of: {choices}")
        return radius

    def log_summary(self) -> str:
        return (
            "supabase=%s url=%s timeout=%s radius_default=%s radius_choices=%s max_results=%s anon_key=%s"
            % (
                bool(self.supabase_url and self.supabase_anon_key),
                self.supabase_url,
                self.supabase_timeout,
                self.nearby_default_radius_km,
                self.nearby_radius_choices,
                self.nearby_max_results,
                mask_secret(self.supabase_anon_key),
            )
        )
