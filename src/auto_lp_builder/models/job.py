from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Sequence

from pydantic import BaseModel, Field

from .artifact import BuildArtifact


class JobStatus(str, Enum):
    queued = "QUEUED"
    in_progress = "IN_PROGRESS"
    completed = "COMPLETED"
    failed = "FAILED"


class JobOutputs(BaseModel):
    artifacts: Sequence[BuildArtifact] = Field(default_factory=list)
    tracking_url: str | None = None

    @property
    def succeeded(self) -> int:
        return sum(1 for artifact in self.artifacts if artifact.success)


class JobRecord(BaseModel):
    id: str
    status: JobStatus
    progress: float = 0.0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    model_id: str | None = None
    variants: int = 1
    errors: Sequence[str] = Field(default_factory=list)
    outputs: JobOutputs = Field(default_factory=JobOutputs)


__all__ = ["JobRecord", "JobStatus", "JobOutputs"]
