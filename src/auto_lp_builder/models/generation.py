from __future__ import annotations

from pydantic import BaseModel, Field


class GenerationRequest(BaseModel):
    prompt: str
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=8000, ge=1)
    system_prompt: str | None = None


class GenerationResponse(BaseModel):
    content: str
    model: str | None = None


__all__ = ["GenerationRequest", "GenerationResponse"]
