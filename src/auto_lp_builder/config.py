from __future__ import annotations

import os

from pydantic import BaseModel, Field

MAX_REPAIR_ATTEMPTS = 2
MAX_VARIANTS = 5


class PipelineSettings(BaseModel):
    environment: str = "dev"
    project_id: str | None = None
    vertex_location: str = "asia-northeast1"
    vertex_model: str = "gemini-1.5-pro"
    request_timeout: float = Field(default=90.0, gt=0)
    max_variants: int = Field(default=MAX_VARIANTS, ge=1, le=MAX_VARIANTS)
    variant_delay: float = Field(default=0.5, ge=0)
    max_concurrency: int = Field(default=1, ge=1)
    max_repair_attempts: int = Field(default=MAX_REPAIR_ATTEMPTS, ge=0, le=MAX_REPAIR_ATTEMPTS)

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        values: dict[str, object] = {
            "environment": os.getenv("ENVIRONMENT", "dev"),
            "project_id": os.getenv("PROJECT_ID"),
            "vertex_location": os.getenv("VERTEX_LOCATION", "asia-northeast1"),
            "vertex_model": os.getenv("VERTEX_MODEL", "gemini-1.5-pro"),
        }
        numeric = {
            "request_timeout": "LP_REQUEST_TIMEOUT",
            "max_variants": "LP_MAX_VARIANTS",
            "variant_delay": "LP_VARIANT_DELAY",
            "max_concurrency": "LP_MAX_CONCURRENCY",
            "max_repair_attempts": "LP_MAX_REPAIR_ATTEMPTS",
        }
        for field, env_name in numeric.items():
            raw = os.getenv(env_name)
            if raw:
                values[field] = raw
        if "max_repair_attempts" in values:
            values["max_repair_attempts"] = min(int(values["max_repair_attempts"]), MAX_REPAIR_ATTEMPTS)
        return cls.model_validate(values)


__all__ = ["MAX_REPAIR_ATTEMPTS", "MAX_VARIANTS", "PipelineSettings"]
