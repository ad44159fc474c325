from __future__ import annotations

import logging
from typing import Sequence
from urllib.parse import urlsplit

from pydantic import ValidationError

from .errors import PipelineInputError
from .models.structure import ConversionTarget, DetectedLink, LinkType

logger = logging.getLogger(__name__)

LINK_PRIORITY: Sequence[LinkType] = (LinkType.cta, LinkType.affiliate, LinkType.tracking, LinkType.redirect)


def best_tracking_link(links: Sequence[DetectedLink]) -> str | None:
    """Highest-ranked scanned link: cta, then affiliate, tracking, redirect."""
    for link_type in LINK_PRIORITY:
        for link in links:
            if link.type != link_type or not link.url or link.url.startswith("#"):
                continue
            if link_type == LinkType.tracking and not link.url.startswith("http"):
                continue
            return link.url
    return None


def resolve_tracking_url(
    *,
    override: str | None,
    analysis_value: str | None,
    links: Sequence[DetectedLink] = (),
    page_url: str | None = None,
    source_url: str | None = None,
) -> str | None:
    """First non-empty candidate wins: explicit override, analysis value, scanned links."""
    if override and override.strip():
        return override.strip()

    candidate = (analysis_value or "").strip() or best_tracking_link(links)
    if candidate and page_url and source_url and _same_host(candidate, page_url):
        logger.info(
            "Tracking URL points back at the analysed page, using source URL",
            extra={"candidate": candidate, "source_url": source_url},
        )
        return source_url
    return candidate or None


def resolve_conversion_target(
    *,
    override: str | None,
    analysis_value: str | None,
    links: Sequence[DetectedLink] = (),
    page_url: str | None = None,
    source_url: str | None = None,
) -> ConversionTarget:
    url = resolve_tracking_url(
        override=override,
        analysis_value=analysis_value,
        links=links,
        page_url=page_url,
        source_url=source_url,
    )
    if not url:
        raise PipelineInputError("no conversion target could be resolved")
    try:
        return ConversionTarget(tracking_url=url)
    except ValidationError as exc:
        raise PipelineInputError(f"conversion target is not a usable URL: {url!r}") from exc


def _same_host(first: str, second: str) -> bool:
    host = urlsplit(first).netloc.lower()
    return bool(host) and host == urlsplit(second).netloc.lower()


__all__ = ["LINK_PRIORITY", "best_tracking_link", "resolve_conversion_target", "resolve_tracking_url"]
