from __future__ import annotations

from enum import Enum
from typing import Sequence
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ComponentType(str, Enum):
    headline = "headline"
    subheadline = "subheadline"
    button = "button"
    image = "image"
    form = "form"
    list = "list"
    video = "video"
    persuasion_element = "persuasion-element"
    quiz_question = "quiz-question"
    body_text = "body-text"


class Importance(str, Enum):
    critical = "critical"
    important = "important"
    optional = "optional"


class ComponentRole(str, Enum):
    attention_grabber = "attention-grabber"
    qualifier = "qualifier"
    engagement = "engagement"
    trust_builder = "trust-builder"
    desire_creator = "desire-creator"
    objection_handler = "objection-handler"
    action_driver = "action-driver"
    urgency_creator = "urgency-creator"
    value_demonstrator = "value-demonstrator"
    brand_element = "brand-element"
    visual_support = "visual-support"
    navigation = "navigation"
    redirect = "redirect"
    unknown = "unknown"


class FlowType(str, Enum):
    single_page = "single-page"
    multi_step = "multi-step"


class Vertical(str, Enum):
    adult = "adult"
    casual = "casual"
    mainstream = "mainstream"


class LinkType(str, Enum):
    affiliate = "affiliate"
    tracking = "tracking"
    redirect = "redirect"
    cta = "cta"
    navigation = "navigation"
    external = "external"
    internal = "internal"


class StructuralComponent(BaseModel):
    id: str
    type: ComponentType
    selector: str | None = None
    content: str = ""
    role: ComponentRole = ComponentRole.unknown
    importance: Importance = Importance.optional
    persuasion_techniques: Sequence[str] = Field(default_factory=list)
    notes: str | None = None


class StepTransition(BaseModel):
    step: int
    action: str
    url: str | None = None


class FlowSpec(BaseModel):
    type: FlowType = FlowType.single_page
    total_steps: int = Field(default=1, ge=1)
    step_boundary_selectors: Sequence[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_steps(self) -> "FlowSpec":
        if self.type == FlowType.multi_step and self.total_steps < 2:
            raise ValueError("multi-step flows need at least two steps")
        return self

    @property
    def is_multi_step(self) -> bool:
        return self.type == FlowType.multi_step

    def transitions(self, target: "ConversionTarget") -> list[StepTransition]:
        """Every step but the last advances; the last one leaves for the conversion target."""
        steps = self.total_steps if self.is_multi_step else 1
        transitions = [StepTransition(step=index, action="next-step") for index in range(1, steps)]
        transitions.append(StepTransition(step=steps, action="redirect", url=target.tracking_url))
        return transitions


class ConversionTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    tracking_url: str

    @field_validator("tracking_url")
    @classmethod
    def _require_absolute_url(cls, value: str) -> str:
        value = value.strip()
        if not is_absolute_url(value):
            raise ValueError(f"not an absolute http(s) URL: {value!r}")
        return value


class DetectedLink(BaseModel):
    id: str
    type: LinkType
    url: str
    anchor_text: str = ""
    selector: str | None = None
    confidence: float = 1.0


class TrackingSnippet(BaseModel):
    id: str
    type: str
    code: str
    selector: str | None = None
    location: str = "head"


class TextBlock(BaseModel):
    id: str
    selector: str
    tag_name: str = "p"
    text: str
    kind: str = "paragraph"


class PageSection(BaseModel):
    id: str
    type: str
    selector: str
    order: int = 0


class StrategySummary(BaseModel):
    main_hook: str = ""
    value_proposition: str = ""
    conversion_mechanism: str = ""
    key_tactics: Sequence[str] = Field(default_factory=list)


class StyleTokens(BaseModel):
    colors: Sequence[str] = Field(default_factory=list)
    fonts: Sequence[str] = Field(default_factory=list)


class StructuralModel(BaseModel):
    id: str
    source_url: str | None = None
    resolved_url: str | None = None
    html: str | None = None
    sections: Sequence[PageSection] = Field(default_factory=list)
    text_blocks: Sequence[TextBlock] = Field(default_factory=list)
    components: Sequence[StructuralComponent] = Field(default_factory=list)
    links: Sequence[DetectedLink] = Field(default_factory=list)
    tracking_snippets: Sequence[TrackingSnippet] = Field(default_factory=list)
    flow: FlowSpec = Field(default_factory=FlowSpec)
    vertical: Vertical = Vertical.mainstream
    tone: str = "professional"
    tracking_url: str = ""
    strategy: StrategySummary = Field(default_factory=StrategySummary)
    original_images: Sequence[str] = Field(default_factory=list)
    style_tokens: StyleTokens = Field(default_factory=StyleTokens)

    def components_by_importance(self, *levels: Importance) -> list[StructuralComponent]:
        return [component for component in self.components if component.importance in levels]


def is_absolute_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


__all__ = [
    "ComponentRole",
    "ComponentType",
    "ConversionTarget",
    "DetectedLink",
    "FlowSpec",
    "FlowType",
    "Importance",
    "LinkType",
    "PageSection",
    "StepTransition",
    "StrategySummary",
    "StructuralComponent",
    "StructuralModel",
    "StyleTokens",
    "TextBlock",
    "TrackingSnippet",
    "Vertical",
    "is_absolute_url",
]
