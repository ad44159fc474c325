from __future__ import annotations

import logging
import re
from typing import Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from bs4 import Tag

from ..dictionaries import AFFILIATE_MARKERS, CTA_MARKERS, TRACKING_MARKERS, TRACKING_PARAMS
from ..document import Document
from ..models.edits import ChangeType, LinkPolicy, LinkRule, MutationPlan
from ..models.structure import DetectedLink, LinkType
from .changelog import ChangeLog

logger = logging.getLogger(__name__)

OUTBOUND_TYPES = (LinkType.affiliate, LinkType.tracking, LinkType.redirect, LinkType.cta, LinkType.external)


def classify_link(url: str, anchor_text: str = "", page_host: str | None = None) -> LinkType:
    lowered = url.lower()
    if lowered.startswith(("#", "javascript:", "mailto:", "tel:")):
        return LinkType.navigation
    parts = urlsplit(url)
    if not parts.netloc or (page_host and parts.netloc.lower() == page_host.lower()):
        return LinkType.internal
    query_keys = {key.lower() for key, _ in parse_qsl(parts.query, keep_blank_values=True)}
    if any(marker in query_keys or f"/{marker}" in parts.path.lower() for marker in AFFILIATE_MARKERS):
        return LinkType.affiliate
    if any(marker in lowered for marker in TRACKING_MARKERS):
        return LinkType.tracking
    text = anchor_text.lower()
    if any(marker in text for marker in CTA_MARKERS):
        return LinkType.cta
    return LinkType.external


def scan_links(document: Document, page_host: str | None = None) -> list[DetectedLink]:
    links: list[DetectedLink] = []
    seen: set[str] = set()
    for anchor in document.elements("a", href=True):
        url = anchor["href"].strip()
        if not url or url in seen:
            continue
        seen.add(url)
        text = anchor.get_text(" ", strip=True)
        links.append(
            DetectedLink(
                id=f"link-{len(links) + 1}",
                type=classify_link(url, text, page_host),
                url=url,
                anchor_text=text,
                selector=document.locate(anchor),
                confidence=0.6,
            )
        )
    return links


def strip_tracking_params(url: str) -> str:
    parts = urlsplit(url)
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    kept = [(key, value) for key, value in pairs if key.lower() not in TRACKING_PARAMS]
    if len(kept) == len(pairs):
        return url
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept), parts.fragment))


def match_rule(rule: LinkRule, url: str) -> tuple[bool, bool]:
    """Return ``(matched, degraded)``; an invalid pattern degrades to substring matching."""
    try:
        return re.search(rule.pattern, url) is not None, False
    except re.error:
        return rule.pattern in url, True


def resolve_replacement(
    link: DetectedLink,
    plan: MutationPlan,
    target_url: str | None,
) -> tuple[str | None, str]:
    override = plan.link_overrides.get(link.url)
    if override:
        return override, "explicit replacement"

    for rule in plan.link_rules:
        matched, degraded = _rule_matches(rule, link)
        if matched:
            if degraded:
                return rule.replacement_url, f"invalid pattern {rule.pattern!r}, matched as substring"
            return rule.replacement_url, f"matched rule {rule.pattern!r}"

    if plan.link_policy == LinkPolicy.strip_tracking and link.type in (LinkType.tracking, LinkType.affiliate):
        return strip_tracking_params(link.url), "removed tracking parameters"
    if plan.link_policy == LinkPolicy.replace_all and target_url and link.type in OUTBOUND_TYPES:
        return target_url, "pointed at conversion target"
    return None, ""


def rewrite_links(
    document: Document,
    plan: MutationPlan,
    links: Sequence[DetectedLink],
    target_url: str | None,
    log: ChangeLog,
) -> None:
    links = links or scan_links(document)
    for link in links:
        replacement, reason = resolve_replacement(link, plan, target_url)
        if replacement is None or replacement == link.url:
            continue
        nodes = _nodes_for(document, link.url)
        if not nodes:
            log.omit(ChangeType.link, link.selector, before=link.url, reason="link not found in document")
            continue
        for node in nodes:
            attribute = "href" if node.name == "a" else "action"
            if not node.has_attr("data-original-href"):
                node["data-original-href"] = link.url
            node[attribute] = replacement
        log.record(ChangeType.link, document.locate(nodes[0]), before=link.url, after=replacement, reason=reason)
        logger.debug("Rewrote link", extra={"link_id": link.id, "count": len(nodes)})

    known = {link.url for link in links}
    for url in plan.link_overrides:
        if url not in known:
            log.omit(ChangeType.link, None, before=url, reason="override matched no link")
    for rule in plan.link_rules:
        if not any(_rule_matches(rule, link)[0] for link in links):
            log.omit(ChangeType.link, None, before=rule.pattern, reason="rule matched no link")


def _rule_matches(rule: LinkRule, link: DetectedLink) -> tuple[bool, bool]:
    if rule.apply_to_types and link.type.value not in rule.apply_to_types:
        return False, False
    return match_rule(rule, link.url)


def _nodes_for(document: Document, url: str) -> list[Tag]:
    anchors = [node for node in document.elements("a", href=True) if node["href"].strip() == url]
    forms = [node for node in document.elements("form", action=True) if node["action"].strip() == url]
    return anchors + forms


__all__ = [
    "classify_link",
    "match_rule",
    "resolve_replacement",
    "rewrite_links",
    "scan_links",
    "strip_tracking_params",
]
