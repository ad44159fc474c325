from __future__ import annotations

import threading
import uuid
from datetime import datetime

from .models.artifact import BuildArtifact
from .models.job import JobOutputs, JobRecord, JobStatus


class JobStore:
    """In-memory build jobs; artifacts are recorded as each variant finishes."""

    def __init__(self) -> None:
        self._jobs: dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def create_job(self, *, model_id: str | None, variants: int) -> JobRecord:
        job = JobRecord(id=self._new_id(model_id), status=JobStatus.queued, model_id=model_id, variants=variants)
        with self._lock:
            self._jobs[job.id] = job
        return job

    def get_job(self, job_id: str) -> JobRecord | None:
        with self._lock:
            return self._jobs.get(job_id)

    def start(self, job_id: str, *, tracking_url: str | None = None) -> JobRecord:
        return self._update(
            job_id,
            status=JobStatus.in_progress,
            outputs=JobOutputs(tracking_url=tracking_url),
        )

    def add_artifact(self, job_id: str, artifact: BuildArtifact) -> JobRecord:
        with self._lock:
            job = self._jobs[job_id]
            artifacts = [*job.outputs.artifacts, artifact]
            outputs = job.outputs.model_copy(update={"artifacts": artifacts})
            progress = min(len(artifacts) / max(job.variants, 1), 1.0)
            errors = list(job.errors)
            if not artifact.success:
                errors += [f"variant {artifact.variant}: {defect.description}" for defect in artifact.defects if defect.blocking]
            return self._store(job, outputs=outputs, progress=progress, errors=errors)

    def complete(self, job_id: str) -> JobRecord:
        return self._update(job_id, status=JobStatus.completed, progress=1.0)

    def fail(self, job_id: str, error: str) -> JobRecord:
        with self._lock:
            job = self._jobs[job_id]
            return self._store(job, status=JobStatus.failed, progress=1.0, errors=[*job.errors, error])

    def _update(self, job_id: str, **changes: object) -> JobRecord:
        with self._lock:
            return self._store(self._jobs[job_id], **changes)

    def _store(self, job: JobRecord, **changes: object) -> JobRecord:
        # Records are replaced, never edited in place.
        updated = job.model_copy(update={**changes, "updated_at": datetime.utcnow()})
        self._jobs[job.id] = updated
        return updated

    def _new_id(self, model_id: str | None) -> str:
        suffix = uuid.uuid4().hex[:6]
        if model_id:
            return f"job_{model_id.replace('/', '-')}_{suffix}"
        return f"job_{datetime.utcnow():%Y%m%d%H%M%S}_{suffix}"


__all__ = ["JobStore"]
