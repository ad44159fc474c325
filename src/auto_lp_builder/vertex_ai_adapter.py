from __future__ import annotations

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Protocol

import vertexai
from vertexai.generative_models import GenerationConfig, GenerativeModel

from .errors import GenerationError
from .models.generation import GenerationRequest, GenerationResponse

logger = logging.getLogger(__name__)


class TextGenerationService(Protocol):
    def generate(self, request: GenerationRequest) -> GenerationResponse: ...


class VertexAIAdapter:
    """Gemini on Vertex AI behind the TextGenerationService protocol."""

    def __init__(
        self,
        *,
        project_id: str,
        location: str = "asia-northeast1",
        model_name: str = "gemini-1.5-pro",
    ) -> None:
        """Initialize the Vertex AI client for one model.

        Args:
            project_id: GCP project ID
            location: Vertex AI region
            model_name: Gemini model name, e.g. "gemini-1.5-pro"
        """
        self.model_name = model_name
        vertexai.init(project=project_id, location=location)
        self._models: dict[str | None, GenerativeModel] = {None: GenerativeModel(model_name)}

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Run one completion.

        Args:
            request: Prompt, sampling temperature, token budget and optional system prompt

        Returns:
            The concatenated text of the first candidate

        Raises:
            GenerationError: The response carried no candidate text (safety block, empty answer)
        """
        response = self._model_for(request.system_prompt).generate_content(
            request.prompt,
            generation_config=GenerationConfig(
                temperature=request.temperature,
                max_output_tokens=request.max_tokens,
            ),
        )
        if not response.candidates:
            raise GenerationError("Vertex AI returned no candidates")
        candidate = response.candidates[0]
        text = "".join(part.text for part in candidate.content.parts if getattr(part, "text", None))
        if not text:
            raise GenerationError(f"Vertex AI returned no text (finish reason: {candidate.finish_reason.name})")

        logger.info(
            "Generated content with Vertex AI",
            extra={
                "model": self.model_name,
                "temperature": request.temperature,
                "input_length": len(request.prompt),
                "output_length": len(text),
                "finish_reason": candidate.finish_reason.name,
            },
        )
        return GenerationResponse(content=text, model=self.model_name)

    def _model_for(self, system_prompt: str | None) -> GenerativeModel:
        if system_prompt not in self._models:
            self._models[system_prompt] = GenerativeModel(self.model_name, system_instruction=[system_prompt])
        return self._models[system_prompt]


def generate_with_timeout(
    service: TextGenerationService,
    request: GenerationRequest,
    *,
    timeout: float,
) -> GenerationResponse:
    """Call ``service`` and give up after ``timeout`` seconds.

    Every failure mode (transport error, timeout, empty output) surfaces as
    GenerationError so callers have a single thing to route to their fallback.
    Each call gets its own worker, so time spent waiting never counts against
    another call. A timed-out call keeps running until the service answers and
    its result is discarded.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="generation")
    future = executor.submit(contextvars.copy_context().run, service.generate, request)
    executor.shutdown(wait=False)

    done, _ = wait([future], timeout=timeout)
    if not done:
        logger.warning("Generation request timed out", extra={"timeout": timeout})
        raise GenerationError(f"generation timed out after {timeout}s")
    try:
        response = future.result()
    except GenerationError:
        raise
    except Exception as exc:
        logger.error("Generation request failed", exc_info=True)
        raise GenerationError(str(exc)) from exc
    if not response.content or not response.content.strip():
        raise GenerationError("generation returned empty content")
    return response


__all__ = ["TextGenerationService", "VertexAIAdapter", "generate_with_timeout"]
