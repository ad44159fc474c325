"""Parsers for untrusted generative output."""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Union

FENCED_DOCUMENT = re.compile(r"```(?:html)?\s*(<!DOCTYPE[\s\S]*</html>)\s*```", re.IGNORECASE)
DIRECT_DOCUMENT = re.compile(r"(<!DOCTYPE[\s\S]*</html>)", re.IGNORECASE)
BARE_DOCUMENT = re.compile(r"(<html[\s>][\s\S]*</html>)", re.IGNORECASE)
JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class Extracted:
    html: str
    source: str


@dataclass(frozen=True)
class Malformed:
    reason: str
    preview: str = ""


ExtractionResult = Union[Extracted, Malformed]


def extract_document(raw: str) -> ExtractionResult:
    """Pull a complete page out of a model response.

    A fenced block wins, then a bare ``<!DOCTYPE ... </html>`` span, then a
    ``<html ... </html>`` span. Anything else is malformed.
    """
    if not raw or not raw.strip():
        return Malformed(reason="empty response")

    fenced = FENCED_DOCUMENT.search(raw)
    if fenced:
        return Extracted(html=fenced.group(1), source="fenced")
    direct = DIRECT_DOCUMENT.search(raw)
    if direct:
        return Extracted(html=direct.group(1), source="direct")
    bare = BARE_DOCUMENT.search(raw)
    if bare:
        return Extracted(html=bare.group(1), source="bare")
    return Malformed(reason="no document start/end markers", preview=raw.strip()[:200])


def extract_json_object(raw: str) -> dict[str, Any]:
    """Parse the outermost JSON object in ``raw``; raises ValueError when there is none."""
    text = raw.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?", "", text).rstrip("`").strip()
    match = JSON_OBJECT.search(text)
    if not match:
        raise ValueError("no JSON object in response")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON response: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("JSON response is not an object")
    return parsed


__all__ = ["ExtractionResult", "Extracted", "Malformed", "extract_document", "extract_json_object"]
