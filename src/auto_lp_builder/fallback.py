from __future__ import annotations

import html
import json
import logging
import re
from typing import Sequence

from .dictionaries import (
    DEFAULT_QUIZ_PROMPTS,
    MAX_FALLBACK_QUESTIONS,
    QUESTION_STARTERS,
    VISUAL_DIRECTIONS,
    VisualDirection,
)
from .models.structure import ComponentRole, ComponentType, ConversionTarget, StructuralModel, Vertical

logger = logging.getLogger(__name__)

TAG = re.compile(r"<[^>]+>")
WHITESPACE = re.compile(r"\s+")
PLACEHOLDER_QUESTION = re.compile(r"^question\s*\d*$|question\s*1234", re.IGNORECASE)
MIN_QUESTION_LENGTH = 15
MIN_DESCRIPTIVE_LENGTH = 30


def script_string(value: str) -> str:
    """A JavaScript string literal that keeps non-ASCII text verbatim and cannot close its <script>."""
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


def clean_text(text: str) -> str:
    return WHITESPACE.sub(" ", TAG.sub("", text)).strip()


def looks_like_question(text: str) -> bool:
    return "?" in text or text.lower().startswith(QUESTION_STARTERS)


def is_quiz_prompt(text: str) -> bool:
    """Whether ``text`` can stand as a quiz step rather than being an instruction or placeholder."""
    lowered = text.lower()
    if PLACEHOLDER_QUESTION.search(text) or "placeholder" in lowered:
        return False
    if text.startswith("(") and text.endswith(")"):
        return False
    if lowered.startswith(("choose ", "select ", "click ", "congratulations", "based on your answers")):
        return False
    if lowered in ("result", "results"):
        return False
    if len(text) < MIN_QUESTION_LENGTH:
        return False
    descriptive = len(text) > MIN_DESCRIPTIVE_LENGTH and not any(
        marker in lowered for marker in ("click", "continue")
    )
    return looks_like_question(text) or descriptive


def collect_prompts(model: StructuralModel, limit: int = MAX_FALLBACK_QUESTIONS) -> list[str]:
    """Quiz prompts found in the model, real questions ahead of descriptive text."""
    questions: list[str] = []
    descriptive: list[str] = []
    for component in model.components:
        if component.role != ComponentRole.engagement and component.type != ComponentType.quiz_question:
            continue
        text = clean_text(component.content)
        if not is_quiz_prompt(text) or text in questions or text in descriptive:
            continue
        (questions if looks_like_question(text) else descriptive).append(text)
    return (questions + descriptive)[:limit]


def fit_prompts(prompts: Sequence[str], steps: int) -> list[str]:
    """Truncate or pad ``prompts`` to exactly ``steps`` entries."""
    fitted = list(prompts[:steps])
    for default in DEFAULT_QUIZ_PROMPTS:
        if len(fitted) >= steps:
            break
        if default not in fitted:
            fitted.append(default)
    while len(fitted) < steps:
        fitted.append(DEFAULT_QUIZ_PROMPTS[-1])
    return fitted


class FallbackSynthesizer:
    """Builds a page from the Structural Model alone; never calls a model and never fails."""

    def synthesize(self, model: StructuralModel, target: ConversionTarget) -> str:
        direction = VISUAL_DIRECTIONS[model.vertical]
        if model.flow.is_multi_step:
            prompts = collect_prompts(model)
            if not prompts:
                logger.info("No usable quiz prompts found, using defaults", extra={"model_id": model.id})
                prompts = list(DEFAULT_QUIZ_PROMPTS)
            return self.multi_step(
                fit_prompts(prompts, model.flow.total_steps),
                target=target,
                title=model.strategy.main_hook,
                direction=direction,
            )
        return self.single_page(
            headline=model.strategy.main_hook,
            body=model.strategy.value_proposition,
            target=target,
            direction=direction,
        )

    def multi_step(
        self,
        prompts: Sequence[str],
        *,
        target: ConversionTarget,
        title: str = "",
        direction: VisualDirection = VISUAL_DIRECTIONS[Vertical.mainstream],
    ) -> str:
        total = len(prompts)
        steps = []
        for index, prompt in enumerate(prompts, start=1):
            display = "block" if index == 1 else "none"
            steps.append(
                f'    <div class="step" id="step{index}" style="display:{display};">\n'
                f"      <h1>{html.escape(prompt, quote=False)}</h1>\n"
                '      <button class="btn btn-yes" onclick="nextStep()">Yes</button>\n'
                '      <button class="btn btn-no" onclick="nextStep()">No</button>\n'
                "    </div>"
            )
        steps_markup = "\n".join(steps)
        url_js = script_string(target.tracking_url)

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{html.escape(title or "Find Your Match", quote=False)}</title>
  <style>
    * {{ margin: 0; padding: 0; box-sizing: border-box; }}
    body {{ font-family: -apple-system, sans-serif; min-height: 100vh; display: flex; justify-content: center; align-items: center; background: linear-gradient(135deg, {direction.primary} 0%, {direction.secondary} 100%); }}
    .container {{ max-width: 500px; width: 90%; background: #ffffff; border-radius: 20px; padding: 40px; }}
    .step {{ text-align: center; }}
    h1 {{ font-size: 24px; margin-bottom: 30px; color: #333333; }}
    .progress {{ background: #eeeeee; border-radius: 10px; height: 8px; margin-bottom: 30px; }}
    .progress-bar {{ background: {direction.primary}; height: 100%; width: {100 // total}%; border-radius: 10px; transition: width 0.3s; }}
    .btn {{ display: block; width: 100%; min-height: 48px; padding: 15px 30px; margin: 10px 0; border: none; border-radius: 10px; font-size: 18px; cursor: pointer; }}
    .btn-yes {{ background: {direction.primary}; color: #ffffff; }}
    .btn-no {{ background: #f5f5f5; color: #333333; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="progress"><div class="progress-bar" id="progressBar"></div></div>
{steps_markup}
  </div>
  <script>
    const REDIRECT_URL = {url_js};
    const TOTAL_STEPS = {total};
    let currentStep = 1;

    function updateProgress() {{
      document.getElementById('progressBar').style.width = (currentStep / TOTAL_STEPS * 100) + '%';
    }}

    function nextStep() {{
      document.getElementById('step' + currentStep).style.display = 'none';
      currentStep++;
      if (currentStep > TOTAL_STEPS) {{
        window.location.href = REDIRECT_URL;
        return;
      }}
      document.getElementById('step' + currentStep).style.display = 'block';
      updateProgress();
    }}
  </script>
</body>
</html>"""

    def single_page(
        self,
        *,
        headline: str,
        body: str,
        target: ConversionTarget,
        direction: VisualDirection = VISUAL_DIRECTIONS[Vertical.mainstream],
    ) -> str:
        url = html.escape(target.tracking_url, quote=True)
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{html.escape(headline or "Find Your Match", quote=False)}</title>
  <style>
    * {{ margin: 0; padding: 0; box-sizing: border-box; }}
    body {{ font-family: -apple-system, sans-serif; min-height: 100vh; background: linear-gradient(135deg, {direction.primary} 0%, {direction.secondary} 100%); }}
    .hero {{ min-height: 100vh; display: flex; flex-direction: column; justify-content: center; align-items: center; text-align: center; padding: 40px 20px; }}
    h1 {{ font-size: 32px; color: #ffffff; margin-bottom: 20px; }}
    p {{ font-size: 18px; color: #ffffff; margin-bottom: 40px; max-width: 600px; }}
    .cta {{ display: inline-block; padding: 20px 60px; background: #ffffff; color: {direction.secondary}; font-size: 22px; font-weight: bold; border-radius: 50px; text-decoration: none; }}
  </style>
</head>
<body>
  <div class="hero">
    <h1>{html.escape(headline or "Find Singles Near You", quote=False)}</h1>
    <p>{html.escape(body or "Connect with people looking to meet someone like you.", quote=False)}</p>
    <a href="{url}" class="cta">Get Started</a>
  </div>
</body>
</html>"""


__all__ = [
    "FallbackSynthesizer",
    "clean_text",
    "collect_prompts",
    "fit_prompts",
    "is_quiz_prompt",
    "script_string",
]
