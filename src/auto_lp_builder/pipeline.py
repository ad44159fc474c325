from __future__ import annotations

import contextvars
import logging
import random
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Mapping, Sequence

from pydantic import BaseModel, Field, ValidationError

from .builder import GenerativeBuilder
from .config import MAX_VARIANTS, PipelineSettings
from .conversion import resolve_conversion_target, resolve_tracking_url
from .document import Document
from .errors import PipelineInputError
from .fallback import FallbackSynthesizer
from .logging_config import set_run_id
from .models.artifact import ArtifactOrigin, BuildArtifact, new_artifact_id
from .models.edits import MutationPlan
from .models.prompt import BuildPrompt, BuildStyling
from .models.structure import ConversionTarget, FlowSpec, FlowType, StructuralModel, Vertical
from .mutation.engine import MutationEngine
from .repair import RepairLoop
from .strategy import StrategySynthesizer
from .validation import Validator
from .vertex_ai_adapter import TextGenerationService, VertexAIAdapter

logger = logging.getLogger(__name__)


class BuildRequest(BaseModel):
    variants: int = Field(default=1, ge=1, le=MAX_VARIANTS)
    tracking_url: str | None = None
    flow_type: FlowType | None = None
    total_steps: int | None = Field(default=None, ge=1)
    vertical: Vertical | None = None
    tone: str | None = None
    styling: BuildStyling | None = None


class Pipeline:
    """Strategy, build, validation, repair and fallback for each requested variant."""

    def __init__(
        self,
        service: TextGenerationService,
        *,
        settings: PipelineSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or PipelineSettings()
        timeout = self.settings.request_timeout
        self.validator = Validator()
        self.fallback = FallbackSynthesizer()
        self.strategy = StrategySynthesizer(service, timeout=timeout)
        self.builder = GenerativeBuilder(service, fallback=self.fallback, timeout=timeout, rng=rng)
        self.repair_loop = RepairLoop(
            service,
            validator=self.validator,
            timeout=timeout,
            max_attempts=self.settings.max_repair_attempts,
        )
        self.engine = MutationEngine()

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> "Pipeline":
        if not settings.project_id:
            raise PipelineInputError("PROJECT_ID is required for the Vertex AI backend")
        adapter = VertexAIAdapter(
            project_id=settings.project_id,
            location=settings.vertex_location,
            model_name=settings.vertex_model,
        )
        return cls(adapter, settings=settings)

    def prepare(
        self,
        model: StructuralModel | Mapping[str, Any] | None,
        request: BuildRequest,
    ) -> tuple[StructuralModel, ConversionTarget]:
        """Validate inputs and apply request overrides; raises PipelineInputError."""
        model = coerce_model(model)
        updates: dict[str, Any] = {}
        if request.flow_type is not None or request.total_steps is not None:
            try:
                updates["flow"] = FlowSpec(
                    type=request.flow_type or model.flow.type,
                    total_steps=request.total_steps or model.flow.total_steps,
                    step_boundary_selectors=model.flow.step_boundary_selectors,
                )
            except ValidationError as exc:
                raise PipelineInputError(f"invalid flow override: {exc}") from exc
        if request.vertical is not None:
            updates["vertical"] = request.vertical
        if request.tone:
            updates["tone"] = request.tone
        if updates:
            model = model.model_copy(update=updates)

        target = resolve_conversion_target(
            override=request.tracking_url,
            analysis_value=model.tracking_url,
            links=model.links,
            page_url=model.resolved_url,
            source_url=model.source_url,
        )
        return model, target

    def run(
        self,
        model: StructuralModel | Mapping[str, Any] | None,
        request: BuildRequest | None = None,
        *,
        on_artifact: Callable[[BuildArtifact], None] | None = None,
    ) -> list[BuildArtifact]:
        """Build every requested variant; ``on_artifact`` sees each one as it finishes."""
        request = request or BuildRequest()
        set_run_id(uuid.uuid4().hex[:12])
        model, target = self.prepare(model, request)
        prompt = self.synthesize(model, target, request.styling)

        count = min(request.variants, self.settings.max_variants)
        logger.info(
            "Starting build run",
            extra={"model_id": model.id, "variants": count, "flow": model.flow.type.value},
        )
        variants = range(1, count + 1)
        artifacts: list[BuildArtifact] = []
        if self.settings.max_concurrency > 1 and count > 1:
            with ThreadPoolExecutor(max_workers=min(count, self.settings.max_concurrency)) as pool:
                futures = [
                    pool.submit(contextvars.copy_context().run, self.run_unit, prompt, model, target, variant)
                    for variant in variants
                ]
                for future in futures:
                    artifacts.append(future.result())
                    if on_artifact:
                        on_artifact(artifacts[-1])
        else:
            for variant in variants:
                artifacts.append(self.run_unit(prompt, model, target, variant))
                if on_artifact:
                    on_artifact(artifacts[-1])
                if variant < count and self.settings.variant_delay:
                    time.sleep(self.settings.variant_delay)

        logger.info(
            "Finished build run",
            extra={"model_id": model.id, "succeeded": sum(1 for artifact in artifacts if artifact.success)},
        )
        return artifacts

    def synthesize(
        self,
        model: StructuralModel,
        target: ConversionTarget,
        styling: BuildStyling | None = None,
    ) -> BuildPrompt:
        return self.strategy.synthesize(model, target, styling)

    def run_unit(
        self,
        prompt: BuildPrompt,
        model: StructuralModel,
        target: ConversionTarget,
        variant: int = 1,
    ) -> BuildArtifact:
        """One independent variant: build, validate, repair, then fall back if still invalid."""
        artifact = self.builder.build(prompt, model, target, variant=variant)
        if artifact.origin == ArtifactOrigin.fallback:
            return artifact

        report = self.validator.validate(artifact.html, model.flow, target)
        artifact = artifact.model_copy(update={"defects": report.defects})
        if report.passed:
            return artifact

        repaired = self.repair_loop.repair(artifact, report.defects, model.flow, target)
        if repaired.success:
            return repaired
        return self.builder.fallback_artifact(
            model,
            target,
            reason="page still failed validation after repair",
            kind="fallback-used",
            variant=variant,
            parent_id=repaired.id,
            defects=tuple(defect for defect in repaired.defects if defect.blocking),
        )

    def mutate(
        self,
        model: StructuralModel | Mapping[str, Any] | None,
        plan: MutationPlan | Mapping[str, Any],
        *,
        html: str | None = None,
        tracking_url: str | None = None,
    ) -> BuildArtifact:
        """Non-generative path: apply a plan of edits to the page and return the result."""
        model = coerce_model(model)
        if not isinstance(plan, MutationPlan):
            try:
                plan = MutationPlan.model_validate(plan)
            except ValidationError as exc:
                raise PipelineInputError(f"invalid mutation plan: {exc}") from exc
        source = html or model.html
        if not source:
            raise PipelineInputError("no document to mutate")

        target = None
        url = resolve_tracking_url(
            override=tracking_url,
            analysis_value=model.tracking_url,
            links=model.links,
            page_url=model.resolved_url,
            source_url=model.source_url,
        )
        if url:
            try:
                target = ConversionTarget(tracking_url=url)
            except ValidationError as exc:
                raise PipelineInputError(f"conversion target is not a usable URL: {url!r}") from exc
        result = self.engine.apply(Document.parse(source), plan, model=model, target=target)
        return BuildArtifact(
            id=new_artifact_id("mutated"),
            html=result.document.serialize(),
            success=True,
            origin=ArtifactOrigin.mutated,
            changes=result.change_log,
        )

    def repair(
        self,
        html: str,
        model: StructuralModel | Mapping[str, Any] | None,
        *,
        user_issues: Sequence[str] = (),
        tracking_url: str | None = None,
    ) -> BuildArtifact:
        """Validate a previously built page and run the repair loop over it."""
        model, target = self.prepare(model, BuildRequest(tracking_url=tracking_url))
        report = self.validator.validate(html, model.flow, target)
        artifact = BuildArtifact(html=html, success=report.passed, defects=report.defects)
        return self.repair_loop.repair(artifact, report.defects, model.flow, target, user_issues=user_issues)


def coerce_model(model: StructuralModel | Mapping[str, Any] | None) -> StructuralModel:
    if model is None:
        raise PipelineInputError("a structural model is required")
    if isinstance(model, StructuralModel):
        return model
    try:
        return StructuralModel.model_validate(model)
    except ValidationError as exc:
        raise PipelineInputError(f"unusable structural model: {exc}") from exc


__all__ = ["BuildRequest", "Pipeline", "coerce_model"]
