from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from .models.structure import Vertical

TRACKING_PARAMS: frozenset[str] = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "gclid",
        "fbclid",
        "msclkid",
        "ttclid",
        "ref",
        "aff",
        "aid",
        "affid",
        "affiliate",
        "click_id",
        "clickid",
        "subid",
        "sub_id",
        "source",
        "src",
        "campaign",
        "cid",
    }
)

AFFILIATE_MARKERS: Sequence[str] = ("aff", "affiliate", "partner", "offer", "clickid", "click_id", "subid")
TRACKING_MARKERS: Sequence[str] = ("track", "clk", "click", "go.", "/go/", "redirect", "out", "utm_")
CTA_MARKERS: Sequence[str] = ("join", "start", "sign up", "signup", "get", "register", "continue", "find", "claim")

# Script hosts that identify third-party snippets when no selector is known.
TRACKING_SIGNATURES: Mapping[str, Sequence[str]] = {
    "google-analytics": ("googletagmanager.com/gtag", "google-analytics.com", "gtag("),
    "google-tag-manager": ("googletagmanager.com/gtm", "GTM-"),
    "facebook-pixel": ("connect.facebook.net", "fbq("),
    "tiktok-pixel": ("analytics.tiktok.com", "ttq."),
    "hotjar": ("static.hotjar.com", "hj("),
    "clarity": ("clarity.ms",),
}


VERTICAL_GUIDANCE: Mapping[Vertical, str] = {
    Vertical.adult: (
        "ADULT DATING:\n"
        "- Content can be explicit and suggestive\n"
        "- Use seductive, intimate language\n"
        "- Keep the original images or neutral placeholders\n"
        '- Words like "hookup", "no strings", "discreet" are appropriate'
    ),
    Vertical.casual: (
        "CASUAL DATING:\n"
        "- Sexy but not explicit\n"
        "- Flirty, playful, fun tone\n"
        "- Focus on meeting people and fun connections"
    ),
    Vertical.mainstream: (
        "MAINSTREAM DATING:\n"
        "- Completely safe for work\n"
        "- Focus on love, relationships, meaningful connections\n"
        '- Words like "find love", "soulmate", "relationship" are key'
    ),
}

DEFAULT_TONE = "playful-seductive"

TONE_GUIDANCE: Mapping[str, str] = {
    "playful-seductive": "Use flirty, teasing language. Create intrigue and anticipation.",
    "urgent-exciting": "High energy. Create FOMO and excitement.",
    "professional-trustworthy": "Clean, credible, reassuring. Build trust with social proof.",
    "professional": "Clean, credible, reassuring. Build trust with social proof.",
    "friendly-approachable": "Warm, welcoming tone. Like talking to a friend.",
    "bold-confident": "Strong statements. Assertive and powerful.",
    "intimate-personal": 'Direct, one-on-one feel. "I created this for YOU."',
    "fun-lighthearted": "Casual and fun, does not take itself too seriously.",
}


@dataclass(frozen=True)
class VisualDirection:
    primary: str
    secondary: str
    background: str
    text: str


VISUAL_DIRECTIONS: Mapping[Vertical, VisualDirection] = {
    Vertical.adult: VisualDirection(primary="#e91e63", secondary="#9c27b0", background="#1a1a2e", text="#ffffff"),
    Vertical.casual: VisualDirection(primary="#ff6b6b", secondary="#4ecdc4", background="#2d3436", text="#ffffff"),
    Vertical.mainstream: VisualDirection(primary="#667eea", secondary="#764ba2", background="#ffffff", text="#333333"),
}

DEFAULT_QUIZ_PROMPTS: Sequence[str] = (
    "Are you over 18?",
    "Are you looking to meet someone?",
    "Are you ready to start?",
)

MAX_FALLBACK_QUESTIONS = 5

QUESTION_STARTERS: Sequence[str] = (
    "what",
    "which",
    "how",
    "do you",
    "are you",
    "would you",
    "have you",
    "can you",
    "will you",
)


@dataclass(frozen=True)
class PlaceholderRule:
    pattern: str
    text: str | None = None
    low: int = 0
    high: int = 0
    suffix: str = ""


PLACEHOLDER_RULES: Sequence[PlaceholderRule] = (
    PlaceholderRule(r"\[X\]", low=23, high=156),
    PlaceholderRule(r"\[NUMBER\]", low=15, high=89),
    PlaceholderRule(r"\[N\]", low=10, high=50),
    PlaceholderRule(r"\[%\]", low=73, high=97, suffix="%"),
    PlaceholderRule(r"\[PERCENT\]", low=73, high=97, suffix="%"),
    PlaceholderRule(r"\[CITY\]", text="your area"),
    PlaceholderRule(r"\[LOCATION\]", text="your area"),
    PlaceholderRule(r"\[AREA\]", text="nearby"),
    PlaceholderRule(r"\[TIME\]", text="today"),
    PlaceholderRule(r"\[DATE\]", text="today"),
    PlaceholderRule(r"\[MINUTES\]", low=2, high=5, suffix=" minutes"),
    PlaceholderRule(r"\[NAME\]", text="someone special"),
    PlaceholderRule(r"\[USER\]", text="you"),
    PlaceholderRule(r"\[DISTANCE\]", low=1, high=10, suffix=" miles"),
    PlaceholderRule(r"\[MILES\]", low=2, high=15),
    PlaceholderRule(r"\[COUNT\]", low=1200, high=4500),
    PlaceholderRule(r"\[MEMBERS\]", low=2300, high=8900),
    PlaceholderRule(r"\[INSERT[^\]]*\]", text=""),
    PlaceholderRule(r"\[PLACEHOLDER[^\]]*\]", text=""),
    PlaceholderRule(r"\[YOUR[^\]]*\]", text="your"),
)

LANGUAGE_NAMES: Mapping[str, str] = {
    "en": "English",
    "es": "Spanish",
    "pt": "Portuguese",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "nl": "Dutch",
    "pl": "Polish",
    "sv": "Swedish",
    "ja": "Japanese",
}

LP_RULES = """## LAYOUT & UX RULES (NON-NEGOTIABLE)
1. Mobile-first: design for 375x667 first, then adapt to tablet and desktop.
2. Each step fits the viewport, CTA included. Use min-height: 100vh on step containers, never max-height: 100vh.
3. Never set overflow: hidden on html, body or step containers.
4. The primary CTA is visible above the fold, one action per screen.
5. CTAs sit in the same position on every step and are thumb-reachable on mobile.

## COPY & MESSAGING RULES
1. Short sentences, no jargon, one idea per sentence.
2. Micro-commitment CTA copy: "Continue", "Show me", "Yes!", "Let's go". Avoid "Submit" or "Register".
3. Headlines start with a verb or "You" and stay under 10 words.
4. Never leave bracketed placeholders such as [X] or [CITY] in the copy.

## VISUAL RULES
1. One dominant visual per step.
2. High-contrast CTA buttons, the most prominent element on screen.
3. Nothing below the CTA that implies scrolling.

## TECHNICAL RULES
1. Inline all CSS, no external stylesheets.
2. Minimal JavaScript, only for step navigation, placed at the end of body.
3. Every onclick handler must call a function defined in the page.
4. Proper viewport meta tag and semantic buttons.
"""


__all__ = [
    "AFFILIATE_MARKERS",
    "CTA_MARKERS",
    "DEFAULT_QUIZ_PROMPTS",
    "DEFAULT_TONE",
    "LANGUAGE_NAMES",
    "LP_RULES",
    "MAX_FALLBACK_QUESTIONS",
    "PLACEHOLDER_RULES",
    "PlaceholderRule",
    "QUESTION_STARTERS",
    "TONE_GUIDANCE",
    "TRACKING_MARKERS",
    "TRACKING_PARAMS",
    "TRACKING_SIGNATURES",
    "VERTICAL_GUIDANCE",
    "VISUAL_DIRECTIONS",
    "VisualDirection",
]
