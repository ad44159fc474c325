from __future__ import annotations

import logging
import random
import re
import time

from .config import MAX_VARIANTS
from .dictionaries import LP_RULES, PLACEHOLDER_RULES
from .errors import GenerationError
from .extraction import Malformed, extract_document
from .fallback import FallbackSynthesizer, script_string
from .models.artifact import ArtifactOrigin, BuildArtifact, Defect, Severity, new_artifact_id
from .models.generation import GenerationRequest
from .models.prompt import BuildPrompt
from .models.structure import ConversionTarget, FlowSpec, StructuralModel
from .vertex_ai_adapter import TextGenerationService, generate_with_timeout

logger = logging.getLogger(__name__)

BUILD_TEMPERATURE = 0.7
BUILD_MAX_TOKENS = 8000

STEP_ADVANCE_OPENERS = (
    re.compile(r"(function\s+nextStep\s*\([^)]*\)\s*\{)"),
    re.compile(r"(nextStep\s*=\s*function\s*\([^)]*\)\s*\{)"),
    re.compile(r"(nextStep\s*=\s*\([^)]*\)\s*=>\s*\{)"),
)
SCRIPT_CLOSE = re.compile(r"</script>", re.IGNORECASE)
BODY_CLOSE = re.compile(r"</body>", re.IGNORECASE)
HTML_CLOSE = re.compile(r"</html>", re.IGNORECASE)


def builder_prompt(prompt: BuildPrompt, flow: FlowSpec, target: ConversionTarget) -> str:
    url = target.tracking_url
    if flow.is_multi_step:
        steps = flow.total_steps
        flow_requirements = f"""### MULTI-STEP PAGE REQUIREMENTS (MUST FOLLOW)
1. Generate EXACTLY {steps} steps, each a container with id="step1" ... id="step{steps}".
2. Only one step is visible at a time; the others have display:none.
3. Steps 1 to {steps - 1} may use yes/no buttons, 2-4 choices or a single continue button.
4. Step {steps} is the CTA step with exactly ONE button that redirects to {url}.
5. Include a progress indicator (e.g. "Question 1/{steps}").

### REQUIRED JAVASCRIPT STRUCTURE
const REDIRECT_URL = "{url}";
const TOTAL_STEPS = {steps};
let currentStep = 1;

function nextStep() {{
  document.getElementById('step' + currentStep).style.display = 'none';
  currentStep++;
  if (currentStep > TOTAL_STEPS) {{
    window.location.href = REDIRECT_URL;
  }} else {{
    document.getElementById('step' + currentStep).style.display = 'block';
  }}
}}"""
    else:
        flow_requirements = f"""### SINGLE PAGE REQUIREMENTS
1. All CTA buttons are <a> elements linking to: {url}
2. A clear call to action is visible above the fold."""

    return f"""You are an expert landing page developer. Generate a high-converting landing page from these instructions.

{prompt.full_prompt}

{LP_RULES}

## CRITICAL REQUIREMENTS

{flow_requirements}

## OUTPUT FORMAT

Generate ONLY the complete HTML code.
- Start with: <!DOCTYPE html>
- End with: </html>
- No explanation, no markdown, just HTML"""


def enforce_redirect(html: str, flow: FlowSpec, target: ConversionTarget) -> str:
    """Make sure a multi-step page leaves for the conversion target.

    Best effort: a guard goes at the top of the step-advance function when one
    can be found, otherwise a redirect helper is appended to the page script.
    """
    url = target.tracking_url
    if not flow.is_multi_step or url in html:
        return html

    url_js = script_string(url)
    guard = (
        "\n  if (typeof currentStep !== 'undefined' && currentStep + 1 > "
        f"(typeof TOTAL_STEPS !== 'undefined' ? TOTAL_STEPS : {flow.total_steps})) {{\n"
        f"    window.location.href = {url_js};\n"
        "    return;\n"
        "  }"
    )
    for opener in STEP_ADVANCE_OPENERS:
        if opener.search(html):
            logger.info("Injected redirect guard into step-advance function")
            return opener.sub(lambda match: match.group(1) + guard, html, count=1)

    helper = f"\nfunction redirectToOffer() {{\n  window.location.href = {url_js};\n}}\n"
    if "REDIRECT_URL" not in html:
        helper = f"\nconst REDIRECT_URL = {url_js};" + helper

    logger.info("Appended redirect helper to page script")
    return append_script(html, helper)


def append_script(html: str, code: str) -> str:
    """Add ``code`` to the last script block, or to a new one before </body>."""
    closes = list(SCRIPT_CLOSE.finditer(html))
    if closes:
        position = closes[-1].start()
        return html[:position] + code + html[position:]

    block = f"<script>{code}</script>\n"
    for closing in (BODY_CLOSE, HTML_CLOSE):
        found = list(closing.finditer(html))
        if found:
            position = found[-1].start()
            return html[:position] + block + html[position:]
    return html + block


def replace_placeholders(html: str, rng: random.Random) -> str:
    """Fill bracketed placeholders the model left behind, e.g. ``[X]`` or ``[CITY]``."""
    for rule in PLACEHOLDER_RULES:
        if rule.text is not None:
            html = re.sub(rule.pattern, rule.text, html)
        else:
            html = re.sub(rule.pattern, lambda _: f"{rng.randint(rule.low, rule.high)}{rule.suffix}", html)
    return html


class GenerativeBuilder:
    def __init__(
        self,
        service: TextGenerationService,
        *,
        fallback: FallbackSynthesizer | None = None,
        timeout: float = 90.0,
        rng: random.Random | None = None,
    ) -> None:
        self._service = service
        self._fallback = fallback or FallbackSynthesizer()
        self._timeout = timeout
        self._rng = rng or random.Random()

    def build(
        self,
        prompt: BuildPrompt,
        model: StructuralModel,
        target: ConversionTarget,
        *,
        variant: int = 1,
    ) -> BuildArtifact:
        """Build one page; generation failures come back as a fallback artifact, never as an exception."""
        request = GenerationRequest(
            prompt=builder_prompt(prompt, model.flow, target),
            temperature=BUILD_TEMPERATURE,
            max_tokens=BUILD_MAX_TOKENS,
        )
        try:
            response = generate_with_timeout(self._service, request, timeout=self._timeout)
        except GenerationError as exc:
            return self.fallback_artifact(model, target, reason=str(exc), variant=variant)

        extracted = extract_document(response.content)
        if isinstance(extracted, Malformed):
            logger.warning(
                "Builder output malformed",
                extra={"model_id": model.id, "variant": variant, "reason": extracted.reason},
            )
            return self.fallback_artifact(model, target, reason=extracted.reason, variant=variant)

        html = enforce_redirect(extracted.html, model.flow, target)
        html = replace_placeholders(html, self._rng)
        logger.info(
            "Built page",
            extra={"model_id": model.id, "variant": variant, "source": extracted.source, "length": len(html)},
        )
        return BuildArtifact(
            id=new_artifact_id(f"variant{variant}"),
            html=html,
            success=True,
            origin=ArtifactOrigin.generated,
            variant=variant,
        )

    def build_variants(
        self,
        prompt: BuildPrompt,
        model: StructuralModel,
        target: ConversionTarget,
        *,
        count: int = 1,
        delay: float = 0.5,
    ) -> list[BuildArtifact]:
        count = max(1, min(count, MAX_VARIANTS))
        artifacts = []
        for variant in range(1, count + 1):
            artifacts.append(self.build(prompt, model, target, variant=variant))
            if variant < count and delay:
                time.sleep(delay)
        return artifacts

    def fallback_artifact(
        self,
        model: StructuralModel,
        target: ConversionTarget,
        *,
        reason: str,
        kind: str = "generation-failed",
        variant: int = 1,
        parent_id: str | None = None,
        defects: tuple[Defect, ...] = (),
    ) -> BuildArtifact:
        logger.warning(
            "Using fallback page",
            extra={"model_id": model.id, "variant": variant, "reason": reason},
        )
        failure = Defect(kind=kind, severity=Severity.critical, description=reason)
        return BuildArtifact(
            id=new_artifact_id(f"fallback{variant}"),
            html=self._fallback.synthesize(model, target),
            success=False,
            origin=ArtifactOrigin.fallback,
            defects=(*defects, failure),
            parent_id=parent_id,
            variant=variant,
        )


__all__ = ["GenerativeBuilder", "append_script", "builder_prompt", "enforce_redirect", "replace_placeholders"]
