from __future__ import annotations

import json
from enum import Enum
from typing import Any, Sequence

from pydantic import BaseModel, Field, field_validator


class ColorScheme(str, Enum):
    original = "original"
    light = "light"
    dark = "dark"
    custom = "custom"


class LayoutStyle(str, Enum):
    original = "original"
    centered = "centered"
    split = "split"
    minimal = "minimal"


class TextHandling(str, Enum):
    keep = "keep"
    rewrite = "rewrite"


class BuildStyling(BaseModel):
    color_scheme: ColorScheme = ColorScheme.original
    custom_colors: Sequence[str] = Field(default_factory=list)
    layout_style: LayoutStyle = LayoutStyle.original
    link_handling: str = "replace-all"
    text_handling: TextHandling = TextHandling.rewrite
    tone: str | None = None
    target_age: str | None = None
    language: str = "en"
    custom_instructions: str | None = None
    conversion_elements: Sequence[str] = Field(default_factory=list)


class PromptSections(BaseModel):
    """Shape the strategy call is asked to return."""

    system_context: str
    requirements: str
    suggestions: str = ""
    component_instructions: str = ""
    technical_requirements: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, (list, dict)):
            return json.dumps(value, indent=2, ensure_ascii=False)
        return value


class BuildPrompt(PromptSections):
    full_prompt: str
    generated: bool = True


__all__ = [
    "BuildPrompt",
    "BuildStyling",
    "ColorScheme",
    "LayoutStyle",
    "PromptSections",
    "TextHandling",
]
