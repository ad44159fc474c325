from __future__ import annotations

import logging
from typing import Sequence

from pydantic import ValidationError

from .dictionaries import DEFAULT_TONE, LANGUAGE_NAMES, TONE_GUIDANCE, VERTICAL_GUIDANCE
from .errors import GenerationError
from .extraction import extract_json_object
from .models.generation import GenerationRequest
from .models.prompt import BuildPrompt, BuildStyling, ColorScheme, LayoutStyle, PromptSections
from .models.structure import ConversionTarget, Importance, StructuralComponent, StructuralModel
from .vertex_ai_adapter import TextGenerationService, generate_with_timeout

logger = logging.getLogger(__name__)

STRATEGY_TEMPERATURE = 0.5
STRATEGY_MAX_TOKENS = 3000
MAX_IMAGES = 5


class StrategySynthesizer:
    """Turns a Structural Model into the prompt the builder works from."""

    def __init__(self, service: TextGenerationService, *, timeout: float = 90.0) -> None:
        self._service = service
        self._timeout = timeout

    def synthesize(
        self,
        model: StructuralModel,
        target: ConversionTarget,
        styling: BuildStyling | None = None,
    ) -> BuildPrompt:
        request = GenerationRequest(
            prompt=self._strategy_prompt(model, target, styling),
            temperature=STRATEGY_TEMPERATURE,
            max_tokens=STRATEGY_MAX_TOKENS,
        )
        try:
            response = generate_with_timeout(self._service, request, timeout=self._timeout)
            sections = PromptSections.model_validate(_normalize_keys(extract_json_object(response.content)))
        except (GenerationError, ValueError, ValidationError) as exc:
            logger.warning(
                "Strategy generation unusable, using template",
                extra={"model_id": model.id, "reason": str(exc)},
            )
            return fallback_prompt(model, target, styling)

        return BuildPrompt(
            **sections.model_dump(),
            full_prompt=assemble_full_prompt(sections, model, target, styling),
            generated=True,
        )

    def _strategy_prompt(
        self,
        model: StructuralModel,
        target: ConversionTarget,
        styling: BuildStyling | None,
    ) -> str:
        critical = model.components_by_importance(Importance.critical)
        important = model.components_by_importance(Importance.important)
        optional = model.components_by_importance(Importance.optional)[:5]
        strategy = model.strategy
        tone = _tone(model, styling)
        images = "\n".join(f"- {image}" for image in model.original_images[:MAX_IMAGES]) or "- none"

        return f"""You are an expert prompt engineer specialising in landing page generation prompts.

Your task: write a detailed, actionable prompt that another model will use to BUILD a new landing page from this analysis.

## ANALYSIS DATA
Page type: {model.flow.type.value}
Total steps: {model.flow.total_steps}
Vertical: {model.vertical.value.upper()}
Tone: {tone}
Tracking URL: {target.tracking_url}

Strategy summary:
- Main hook: {strategy.main_hook}
- Value proposition: {strategy.value_proposition}
- Conversion mechanism: {strategy.conversion_mechanism}
- Key tactics: {", ".join(strategy.key_tactics)}

## STYLING PREFERENCES
{styling_instructions(styling)}

CRITICAL COMPONENTS (must include):
{_format_components(critical)}

IMPORTANT COMPONENTS (should include):
{_format_components(important)}

OPTIONAL COMPONENTS (can reimagine):
{_format_components(optional)}

ORIGINAL IMAGES:
{images}

## STRUCTURE
Multi-step pages follow HOOK (step 1) -> QUIZ (steps 2 to N-1) -> CTA (step N).
Quiz answers call nextStep() directly. Only the final step redirects to the tracking URL.

## VERTICAL GUIDANCE
{VERTICAL_GUIDANCE[model.vertical]}

## TONE GUIDANCE
{TONE_GUIDANCE.get(tone, TONE_GUIDANCE[DEFAULT_TONE])}

## OUTPUT FORMAT
Return a JSON object:
{{
  "system_context": "...",
  "requirements": "...",
  "suggestions": "...",
  "component_instructions": "...",
  "technical_requirements": "..."
}}

Return ONLY the JSON."""


def fallback_prompt(
    model: StructuralModel,
    target: ConversionTarget,
    styling: BuildStyling | None = None,
) -> BuildPrompt:
    """Deterministic prompt with the same shape as the generated one."""
    flow = model.flow
    tone = _tone(model, styling)
    url = target.tracking_url

    system_context = (
        f"You are building a {model.vertical.value} landing page with a {flow.type.value} flow and {tone} tone."
    )
    requirements = [
        "REQUIRED ELEMENTS:",
        "1. Main headline that grabs attention",
        f"2. {flow.total_steps} steps following HOOK -> QUIZ -> CTA" if flow.is_multi_step else "2. Clear value proposition",
        f"3. Final redirect to: {url}",
    ]
    if flow.is_multi_step:
        requirements += [
            "",
            "STRUCTURE FOR MULTI-STEP:",
            "- Step 1 (HOOK): headline + Continue button",
            f"- Steps 2 to {flow.total_steps - 1} (QUIZ): questions with answer options only",
            f"- Step {flow.total_steps} (CTA): final conversion step with a single CTA button",
        ]
    suggestions = (
        "CREATIVE FREEDOM:\n"
        f"- Colour schemes appropriate for the {model.vertical.value} vertical\n"
        "- Centered, split-screen or card-based layouts\n"
        f"- Match the {tone} tone in all copy"
    )
    component_instructions = "\n".join(
        f"- {component.type.value}: {component.content[:50]} ({component.role.value})"
        for component in model.components
        if component.importance != Importance.optional
    )
    if flow.is_multi_step:
        technical = (
            "MULTI-STEP JS STRUCTURE:\n"
            f'const REDIRECT_URL = "{url}";\n'
            f"const TOTAL_STEPS = {flow.total_steps};\n"
            "let currentStep = 1;\n"
            "function nextStep() {\n"
            "  document.getElementById('step' + currentStep).style.display = 'none';\n"
            "  currentStep++;\n"
            "  if (currentStep > TOTAL_STEPS) { window.location.href = REDIRECT_URL; return; }\n"
            "  document.getElementById('step' + currentStep).style.display = 'block';\n"
            "}\n"
            "Use min-height: 100vh, never max-height or overflow: hidden on body or steps."
        )
    else:
        technical = (
            f"Every CTA is an <a> pointing at {url}.\n"
            "Use min-height: 100vh, never max-height or overflow: hidden on body."
        )

    sections = PromptSections(
        system_context=system_context,
        requirements="\n".join(requirements),
        suggestions=suggestions,
        component_instructions=component_instructions,
        technical_requirements=technical,
    )
    return BuildPrompt(
        **sections.model_dump(),
        full_prompt=assemble_full_prompt(sections, model, target, styling),
        generated=False,
    )


def assemble_full_prompt(
    sections: PromptSections,
    model: StructuralModel,
    target: ConversionTarget,
    styling: BuildStyling | None = None,
) -> str:
    images = list(model.original_images[:MAX_IMAGES])
    if images:
        image_block = "Use these images from the original:\n" + "\n".join(f"- {image}" for image in images)
    else:
        image_block = "No images available. Do not add <img> tags; use colour, gradients and typography."

    return f"""{sections.system_context}

## REQUIREMENTS (Must Have)

{sections.requirements}

## CREATIVE SUGGESTIONS

{sections.suggestions}

## STYLING PREFERENCES

{styling_instructions(styling)}

## COMPONENT INSTRUCTIONS

{sections.component_instructions}

## TECHNICAL REQUIREMENTS

{sections.technical_requirements}

## CRITICAL URLS

- Tracking/redirect URL: {target.tracking_url}
- All CTAs must point to this URL
- Multi-step flows must redirect to this URL after the last step

## IMAGES

{image_block}

## OUTPUT

A single complete HTML file with inline CSS and JavaScript and a viewport meta tag.
Start with <!DOCTYPE html> and end with </html>."""


def styling_instructions(styling: BuildStyling | None) -> str:
    if styling is None:
        return "Use defaults: matching colours, mobile-optimised layout."
    parts: list[str] = []
    if styling.color_scheme == ColorScheme.custom and styling.custom_colors:
        parts.append(f"Colours: use exactly {', '.join(styling.custom_colors)}")
    elif styling.color_scheme != ColorScheme.original:
        parts.append(f"Colour scheme: {styling.color_scheme.value}")
    if styling.layout_style != LayoutStyle.original:
        parts.append(f"Layout: {styling.layout_style.value}")
    parts.append(f"Links: {styling.link_handling}")
    parts.append(f"Text: {styling.text_handling.value} the original copy")
    if styling.tone:
        parts.append(f"Tone: {styling.tone}")
    if styling.target_age:
        parts.append(f"Target age group: {styling.target_age}")
    if styling.language != "en":
        language = LANGUAGE_NAMES.get(styling.language, styling.language)
        parts.append(f"Language: write ALL visible text in {language}, naturally, not as a translation.")
    if styling.custom_instructions:
        parts.append(f"Custom instructions: {styling.custom_instructions}")
    if styling.conversion_elements:
        parts.append("Conversion elements to add: " + ", ".join(styling.conversion_elements))
    return "\n".join(f"- {part}" for part in parts)


def _tone(model: StructuralModel, styling: BuildStyling | None) -> str:
    return (styling.tone if styling and styling.tone else None) or model.tone or DEFAULT_TONE


def _format_components(components: Sequence[StructuralComponent]) -> str:
    if not components:
        return "- none"
    return "\n".join(
        f'- {component.type.value} [{component.role.value}]: "{component.content[:100]}"'
        f" (techniques: {', '.join(component.persuasion_techniques) or 'none'})"
        for component in components
    )


def _normalize_keys(payload: dict) -> dict:
    """Accept camelCase keys as well as snake_case ones."""
    aliases = {
        "systemContext": "system_context",
        "componentInstructions": "component_instructions",
        "technicalRequirements": "technical_requirements",
    }
    return {aliases.get(key, key): value for key, value in payload.items()}


__all__ = ["StrategySynthesizer", "assemble_full_prompt", "fallback_prompt", "styling_instructions"]
