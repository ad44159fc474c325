from __future__ import annotations

import threading

import pytest

from auto_lp_builder.config import PipelineSettings
from auto_lp_builder.models.generation import GenerationRequest, GenerationResponse
from auto_lp_builder.models.structure import (
    ComponentRole,
    ComponentType,
    ConversionTarget,
    FlowSpec,
    FlowType,
    StructuralComponent,
    StructuralModel,
)

TRACKING_URL = "https://x.test/go"

VALID_MULTI_STEP = """<!DOCTYPE html>
<html>
<head><style>body { min-height: 100vh; }</style></head>
<body>
  <div class="step" id="step1" style="display:block;"><h1>Hi</h1><button onclick="nextStep()">Go</button></div>
  <div class="step" id="step2" style="display:none;"><h1>Ready?</h1><button onclick="nextStep()">Yes</button></div>
  <div class="step" id="step3" style="display:none;"><h1>Done</h1><button onclick="nextStep()">Start</button></div>
  <script>
    const REDIRECT_URL = "https://x.test/go";
    const TOTAL_STEPS = 3;
    let currentStep = 1;
    function nextStep() {
      document.getElementById('step' + currentStep).style.display = 'none';
      currentStep++;
      if (currentStep > TOTAL_STEPS) { window.location.href = REDIRECT_URL; return; }
      document.getElementById('step' + currentStep).style.display = 'block';
    }
  </script>
</body>
</html>"""

STRATEGY_JSON = """```json
{
  "system_context": "You are building a casual dating quiz.",
  "requirements": "Three steps ending in a single CTA.",
  "suggestions": "Warm colours.",
  "component_instructions": ["headline", "quiz"],
  "technical_requirements": "Use nextStep()."
}
```"""


class ScriptedService:
    """Text generation double that replays queued replies; exceptions in the queue are raised."""

    def __init__(self, *replies: object) -> None:
        self.replies = list(replies)
        self.requests: list[GenerationRequest] = []
        self._lock = threading.Lock()

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        with self._lock:
            self.requests.append(request)
            if not self.replies:
                raise RuntimeError("no scripted reply left")
            reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return GenerationResponse(content=str(reply), model="scripted")


@pytest.fixture
def target() -> ConversionTarget:
    return ConversionTarget(tracking_url=TRACKING_URL)


@pytest.fixture
def multi_step_model() -> StructuralModel:
    return StructuralModel(
        id="lp-quiz",
        source_url="https://offers.test/lander",
        resolved_url="https://lander.test/",
        flow=FlowSpec(type=FlowType.multi_step, total_steps=3),
        tracking_url=TRACKING_URL,
        components=[
            StructuralComponent(
                id="q1",
                type=ComponentType.quiz_question,
                content="<b>Would you like to meet singles nearby?</b>",
                role=ComponentRole.engagement,
            ),
        ],
    )


@pytest.fixture
def single_page_model() -> StructuralModel:
    return StructuralModel(id="lp-single", tracking_url=TRACKING_URL)


@pytest.fixture
def settings() -> PipelineSettings:
    return PipelineSettings(request_timeout=5, variant_delay=0)
