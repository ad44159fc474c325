from __future__ import annotations

import logging
import re
from typing import Sequence

from .builder import append_script, enforce_redirect
from .config import MAX_REPAIR_ATTEMPTS
from .errors import GenerationError
from .extraction import Extracted, extract_document
from .fallback import script_string
from .models.artifact import ArtifactOrigin, BuildArtifact, Defect, DefectResolution, Severity, new_artifact_id
from .models.generation import GenerationRequest
from .models.structure import ConversionTarget, FlowSpec
from .validation import STEP_ADVANCE, Validator
from .vertex_ai_adapter import TextGenerationService, generate_with_timeout

logger = logging.getLogger(__name__)

REPAIR_TEMPERATURE = 0.3
REPAIR_MAX_TOKENS = 8000
USER_REPORTED = "user-reported"

BODY_OVERFLOW_RULE = re.compile(r"(\b(?:html\s*,\s*body|html|body)\s*\{[^}]*?)overflow\s*:\s*hidden\s*;?", re.IGNORECASE)
STEP_OVERFLOW_RULE = re.compile(r"(\.step\s*\{[^}]*?)overflow\s*:\s*hidden\s*;?", re.IGNORECASE)
MAX_HEIGHT_RULE = re.compile(r"max-height\s*:\s*100vh", re.IGNORECASE)
REDIRECT_ASSIGNMENT = re.compile(r"""(REDIRECT_URL\s*=\s*)(["'])[^"']*\2""")
LOCATION_ASSIGNMENT = re.compile(r"""(window\.location\.href\s*=\s*)(["'])[^"']*\2""")

NEXT_STEP_FUNCTION = """
function nextStep() {
  var current = document.getElementById('step' + currentStep);
  if (current) { current.style.display = 'none'; }
  currentStep++;
  if (currentStep > TOTAL_STEPS) {
    window.location.href = REDIRECT_URL;
    return;
  }
  var next = document.getElementById('step' + currentStep);
  if (next) { next.style.display = 'block'; }
}
"""


def repair_prompt(html: str, defects: Sequence[Defect], flow: FlowSpec, target: ConversionTarget) -> str:
    issues = "\n".join(
        f"- [{'USER REPORTED' if defect.kind == USER_REPORTED else defect.severity.value.upper()}] "
        f"{defect.description}" + (f" (at {defect.location_hint})" if defect.location_hint else "")
        for defect in defects
    )
    structure = (
        f"Multi-step flow with exactly {flow.total_steps} steps (id=\"step1\" ... id=\"step{flow.total_steps}\"), "
        "advanced by nextStep(), redirecting after the last step."
        if flow.is_multi_step
        else "Single page; every CTA links to the tracking URL."
    )
    return f"""You are an expert HTML/CSS/JS repair agent. Fix ALL the issues listed below in this landing page.

## ISSUES TO FIX

{issues}

## REFERENCE

Structure: {structure}
Tracking URL: {target.tracking_url}

## CURRENT HTML

```html
{html}
```

## REPAIR INSTRUCTIONS

1. Fix every listed issue and preserve everything that already works.
2. Every onclick handler must call a function defined in the page.
3. No overflow: hidden on html, body or step containers; use min-height: 100vh, never max-height: 100vh.

Return ONLY the complete repaired HTML, starting with <!DOCTYPE html> and ending with </html>."""


def basic_repairs(html: str, flow: FlowSpec, target: ConversionTarget) -> str:
    """Deterministic fixes for the defects that can be repaired without a model."""
    html = BODY_OVERFLOW_RULE.sub(r"\1", html)
    html = STEP_OVERFLOW_RULE.sub(r"\1", html)
    html = MAX_HEIGHT_RULE.sub("min-height: 100vh", html)

    url = target.tracking_url
    if url not in html:
        url_js = script_string(url)
        for pattern in (REDIRECT_ASSIGNMENT, LOCATION_ASSIGNMENT):
            if pattern.search(html):
                html = pattern.sub(lambda match: match.group(1) + url_js, html)
                break

    if flow.is_multi_step and not STEP_ADVANCE.search(html):
        prelude = ""
        if "TOTAL_STEPS" not in html:
            prelude += f"\nconst TOTAL_STEPS = {flow.total_steps};"
        if "currentStep" not in html:
            prelude += "\nlet currentStep = 1;"
        if "REDIRECT_URL" not in html:
            prelude += f"\nconst REDIRECT_URL = {script_string(url)};"
        html = append_script(html, prelude + NEXT_STEP_FUNCTION)

    return enforce_redirect(html, flow, target)


def resolve(consumed: Sequence[Defect], remaining: Sequence[Defect], *, generated: bool) -> tuple[DefectResolution, ...]:
    """Mark each consumed defect resolved when the new report no longer carries it."""
    still_open = {(defect.kind, defect.location_hint) for defect in remaining}
    resolutions = []
    for defect in consumed:
        if defect.kind == USER_REPORTED:
            resolved = generated
        else:
            resolved = (defect.kind, defect.location_hint) not in still_open
        resolutions.append(DefectResolution(defect=defect, resolved=resolved))
    return tuple(resolutions)


class RepairLoop:
    """Bounded validate-and-fix cycle over a built page."""

    def __init__(
        self,
        service: TextGenerationService,
        *,
        validator: Validator | None = None,
        timeout: float = 90.0,
        max_attempts: int = MAX_REPAIR_ATTEMPTS,
    ) -> None:
        self._service = service
        self._validator = validator or Validator()
        self._timeout = timeout
        self._max_attempts = max(0, min(max_attempts, MAX_REPAIR_ATTEMPTS))

    def repair(
        self,
        artifact: BuildArtifact,
        defects: Sequence[Defect],
        flow: FlowSpec,
        target: ConversionTarget,
        *,
        user_issues: Sequence[str] = (),
    ) -> BuildArtifact:
        outstanding = [defect for defect in defects if defect.blocking]
        outstanding += [Defect(kind=USER_REPORTED, severity=Severity.major, description=issue) for issue in user_issues]
        if not outstanding:
            return artifact

        current = artifact
        for attempt in range(1, self._max_attempts + 1):
            html, generated = self._attempt(current.html, outstanding, flow, target)
            report = self._validator.validate(html, flow, target)
            current = BuildArtifact(
                id=new_artifact_id(f"repair{attempt}"),
                html=html,
                success=report.passed,
                origin=ArtifactOrigin.repaired,
                defects=report.defects,
                parent_id=current.id,
                variant=artifact.variant,
                resolutions=resolve(outstanding, report.defects, generated=generated),
            )
            logger.info(
                "Repair attempt finished",
                extra={
                    "attempt": attempt,
                    "variant": artifact.variant,
                    "passed": report.passed,
                    "score": report.score,
                    "generated": generated,
                },
            )
            if report.passed:
                return current
            outstanding = [defect for defect in report.defects if defect.blocking]

        if current is artifact:
            return artifact.model_copy(update={"success": False, "defects": tuple(defects)})
        return current

    def _attempt(
        self,
        html: str,
        defects: Sequence[Defect],
        flow: FlowSpec,
        target: ConversionTarget,
    ) -> tuple[str, bool]:
        request = GenerationRequest(
            prompt=repair_prompt(html, defects, flow, target),
            temperature=REPAIR_TEMPERATURE,
            max_tokens=REPAIR_MAX_TOKENS,
        )
        try:
            response = generate_with_timeout(self._service, request, timeout=self._timeout)
        except GenerationError as exc:
            logger.warning("Repair generation failed, applying basic repairs", extra={"reason": str(exc)})
            return basic_repairs(html, flow, target), False

        extracted = extract_document(response.content)
        if not isinstance(extracted, Extracted):
            logger.warning("Repair output malformed, applying basic repairs", extra={"reason": extracted.reason})
            return basic_repairs(html, flow, target), False
        return enforce_redirect(extracted.html, flow, target), True


__all__ = ["RepairLoop", "basic_repairs", "repair_prompt", "resolve"]
