from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field

from .edits import ChangeLogEntry


class Severity(str, Enum):
    critical = "critical"
    major = "major"
    minor = "minor"
    suggestion = "suggestion"


class ArtifactOrigin(str, Enum):
    generated = "generated"
    repaired = "repaired"
    fallback = "fallback"
    mutated = "mutated"


class Defect(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    severity: Severity
    description: str
    location_hint: str | None = None

    @property
    def blocking(self) -> bool:
        return self.severity in (Severity.critical, Severity.major)


class DefectResolution(BaseModel):
    model_config = ConfigDict(frozen=True)

    defect: Defect
    resolved: bool


class ValidationReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    defects: Sequence[Defect] = Field(default_factory=tuple)
    score: int = 100

    @property
    def passed(self) -> bool:
        return not any(defect.blocking for defect in self.defects)

    def count(self, severity: Severity) -> int:
        return sum(1 for defect in self.defects if defect.severity == severity)


def new_artifact_id(prefix: str = "build") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class BuildArtifact(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_artifact_id)
    html: str
    success: bool
    origin: ArtifactOrigin = ArtifactOrigin.generated
    defects: Sequence[Defect] = Field(default_factory=tuple)
    parent_id: str | None = None
    variant: int = 1
    created_at: datetime = Field(default_factory=datetime.utcnow)
    changes: Sequence[ChangeLogEntry] = Field(default_factory=tuple)
    resolutions: Sequence[DefectResolution] = Field(default_factory=tuple)


__all__ = [
    "ArtifactOrigin",
    "BuildArtifact",
    "Defect",
    "DefectResolution",
    "Severity",
    "ValidationReport",
    "new_artifact_id",
]
