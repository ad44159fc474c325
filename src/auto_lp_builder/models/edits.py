from __future__ import annotations

from enum import Enum
from typing import Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field


class ChangeType(str, Enum):
    structure = "structure"
    component = "component"
    text = "text"
    style = "style"
    link = "link"
    tracking = "tracking"
    element = "element"


class ChangeLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ChangeType
    selector: str | None = None
    before: str | None = None
    after: str | None = None
    reason: str = ""
    applied: bool = True


class ImageHandling(str, Enum):
    keep = "keep"
    placeholder = "placeholder"
    remove = "remove"


class ComponentToggles(BaseModel):
    include_forms: bool = True
    include_videos: bool = True
    include_lists: bool = True
    image_handling: ImageHandling = ImageHandling.keep
    button_text: str | None = None
    button_url: str | None = None

    def is_default(self) -> bool:
        return self == ComponentToggles()


class TextEdit(BaseModel):
    selector: str
    original: str
    replacement: str
    reason: str = ""


class StyleEdit(BaseModel):
    color_map: Mapping[str, str] = Field(default_factory=dict)
    font_map: Mapping[str, str] = Field(default_factory=dict)
    custom_css: str | None = None


class LinkPolicy(str, Enum):
    keep = "keep"
    strip_tracking = "strip-tracking"
    replace_all = "replace-all"


class LinkRule(BaseModel):
    pattern: str
    replacement_url: str
    apply_to_types: Sequence[str] = Field(default_factory=list)


class TrackingAction(str, Enum):
    remove = "remove"
    replace = "replace"


class TrackingEdit(BaseModel):
    snippet_id: str
    action: TrackingAction
    replacement_code: str | None = None


class InjectionPosition(str, Enum):
    top = "top"
    bottom = "bottom"
    floating = "floating"


class CountdownSpec(BaseModel):
    duration_minutes: int = Field(default=15, ge=1)
    text: str = "Offer expires in:"
    position: InjectionPosition = InjectionPosition.top


class ScarcitySpec(BaseModel):
    text: str = "Only {count} spots left!"
    count: int = 7
    position: InjectionPosition = InjectionPosition.top


class SocialProofSpec(BaseModel):
    messages: Sequence[str] = Field(
        default_factory=lambda: [
            "Sarah from New York just signed up",
            "Mike from Los Angeles just joined",
            "Jessica from Chicago just registered",
        ]
    )
    interval_seconds: int = Field(default=8, ge=1)


class StickyCtaSpec(BaseModel):
    text: str = "Get Started Now"
    url: str | None = None


class ExitIntentSpec(BaseModel):
    headline: str = "Wait! Don't leave yet!"
    text: str = "Get exclusive access before you go."
    button_text: str = "Claim My Spot"
    url: str | None = None


class InjectedTracking(BaseModel):
    code: str
    location: str = "head"


class InjectionPlan(BaseModel):
    countdown: CountdownSpec | None = None
    scarcity: ScarcitySpec | None = None
    social_proof: SocialProofSpec | None = None
    trust_badges: Sequence[str] = Field(default_factory=list)
    exit_intent: ExitIntentSpec | None = None
    sticky_cta: StickyCtaSpec | None = None
    tracking_codes: Sequence[InjectedTracking] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return self == InjectionPlan()


class MutationPlan(BaseModel):
    remove_sections: Sequence[str] = Field(default_factory=list)
    components: ComponentToggles = Field(default_factory=ComponentToggles)
    text_edits: Sequence[TextEdit] = Field(default_factory=list)
    style: StyleEdit = Field(default_factory=StyleEdit)
    link_policy: LinkPolicy = LinkPolicy.keep
    link_overrides: Mapping[str, str] = Field(default_factory=dict)
    link_rules: Sequence[LinkRule] = Field(default_factory=list)
    remove_all_tracking: bool = False
    tracking_edits: Sequence[TrackingEdit] = Field(default_factory=list)
    tracking_replacements: Mapping[str, str] = Field(default_factory=dict)
    injections: InjectionPlan = Field(default_factory=InjectionPlan)
    redirect_url: str | None = None
    strict_patterns: bool = False

    def has_link_edits(self) -> bool:
        return bool(self.link_overrides or self.link_rules) or self.link_policy != LinkPolicy.keep

    def has_tracking_edits(self) -> bool:
        return self.remove_all_tracking or bool(self.tracking_edits or self.tracking_replacements)


__all__ = [
    "ChangeLogEntry",
    "ChangeType",
    "ComponentToggles",
    "CountdownSpec",
    "ExitIntentSpec",
    "ImageHandling",
    "InjectedTracking",
    "InjectionPlan",
    "InjectionPosition",
    "LinkPolicy",
    "LinkRule",
    "MutationPlan",
    "ScarcitySpec",
    "SocialProofSpec",
    "StickyCtaSpec",
    "StyleEdit",
    "TextEdit",
    "TrackingAction",
    "TrackingEdit",
]
