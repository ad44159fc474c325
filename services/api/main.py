from __future__ import annotations

import asyncio
import logging
from functools import lru_cache, partial

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from auto_lp_builder.config import PipelineSettings
from auto_lp_builder.errors import PipelineInputError
from auto_lp_builder.job_store import JobStore
from auto_lp_builder.logging_config import setup_logging
from auto_lp_builder.models.artifact import BuildArtifact
from auto_lp_builder.models.edits import MutationPlan
from auto_lp_builder.models.job import JobOutputs, JobRecord, JobStatus
from auto_lp_builder.models.structure import StructuralModel
from auto_lp_builder.pipeline import BuildRequest, Pipeline

logger = logging.getLogger(__name__)


class GenerateBuildRequest(BaseModel):
    model: StructuralModel
    options: BuildRequest = Field(default_factory=BuildRequest)


class GenerateBuildResponse(BaseModel):
    job_id: str
    status: JobStatus


class RepairBuildRequest(BaseModel):
    html: str
    model: StructuralModel
    user_issues: list[str] = Field(default_factory=list)
    tracking_url: str | None = None


class MutateBuildRequest(BaseModel):
    model: StructuralModel
    plan: MutationPlan = Field(default_factory=MutationPlan)
    html: str | None = None
    tracking_url: str | None = None


class JobResponse(BaseModel):
    id: str
    status: JobStatus
    progress: float
    outputs: JobOutputs
    errors: list[str]

    @staticmethod
    def from_record(record: JobRecord) -> "JobResponse":
        return JobResponse(
            id=record.id,
            status=record.status,
            progress=record.progress,
            outputs=record.outputs,
            errors=list(record.errors),
        )


settings = PipelineSettings.from_env()

setup_logging(environment=settings.environment, project_id=settings.project_id)

app = FastAPI(title="Auto LP Builder API", version="0.1.0")

job_store = JobStore()


@lru_cache
def get_pipeline() -> Pipeline:
    return Pipeline.from_settings(settings)


@app.exception_handler(PipelineInputError)
async def handle_input_error(request: Request, exc: PipelineInputError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.post("/v1/builds:generate", response_model=GenerateBuildResponse)
async def generate_build(
    request: GenerateBuildRequest,
    background_tasks: BackgroundTasks,
    pipeline: Pipeline = Depends(get_pipeline),
) -> GenerateBuildResponse:
    # Reject unusable input before queueing anything.
    pipeline.prepare(request.model, request.options)
    job = job_store.create_job(model_id=request.model.id, variants=request.options.variants)
    background_tasks.add_task(_run_job, job.id, request, pipeline)
    return GenerateBuildResponse(job_id=job.id, status=job.status)


@app.get("/v1/jobs/{job_id}", response_model=JobResponse)
async def get_job(job_id: str) -> JobResponse:
    record = job_store.get_job(job_id)
    if not record:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobResponse.from_record(record)


@app.post("/v1/builds:repair", response_model=BuildArtifact)
async def repair_build(request: RepairBuildRequest, pipeline: Pipeline = Depends(get_pipeline)) -> BuildArtifact:
    return await asyncio.to_thread(
        pipeline.repair,
        request.html,
        request.model,
        user_issues=request.user_issues,
        tracking_url=request.tracking_url,
    )


@app.post("/v1/builds:mutate", response_model=BuildArtifact)
async def mutate_build(request: MutateBuildRequest, pipeline: Pipeline = Depends(get_pipeline)) -> BuildArtifact:
    return await asyncio.to_thread(
        pipeline.mutate,
        request.model,
        request.plan,
        html=request.html,
        tracking_url=request.tracking_url,
    )


async def _run_job(job_id: str, request: GenerateBuildRequest, pipeline: Pipeline) -> None:
    try:
        _, target = pipeline.prepare(request.model, request.options)
        job_store.start(job_id, tracking_url=target.tracking_url)
        await asyncio.to_thread(
            pipeline.run,
            request.model,
            request.options,
            on_artifact=partial(job_store.add_artifact, job_id),
        )
        record = job_store.complete(job_id)
        logger.info(
            "Build job finished",
            extra={"job_id": job_id, "variants": record.variants, "succeeded": record.outputs.succeeded},
        )
    except Exception as exc:  # pragma: no cover - safety net
        logger.exception("Build job failed", extra={"job_id": job_id})
        job_store.fail(job_id, str(exc))


@app.get("/health")
async def healthcheck() -> JSONResponse:
    return JSONResponse({"status": "ok"})
