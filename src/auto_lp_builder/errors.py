from __future__ import annotations


class PipelineInputError(ValueError):
    """Raised when a run cannot start from the inputs it was given."""


class GenerationError(RuntimeError):
    """The text generation service failed, timed out or returned nothing usable."""


__all__ = ["GenerationError", "PipelineInputError"]
