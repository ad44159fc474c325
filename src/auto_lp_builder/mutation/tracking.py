from __future__ import annotations

from typing import Sequence
from urllib.parse import urlsplit

from bs4 import Tag

from ..dictionaries import TRACKING_SIGNATURES
from ..document import Document
from ..models.edits import ChangeType, MutationPlan, TrackingAction
from ..models.structure import TrackingSnippet
from .changelog import ChangeLog

VERIFICATION_META = {
    "facebook-pixel": "facebook-domain-verification",
    "google-analytics": "google-site-verification",
}


def rewrite_tracking(
    document: Document,
    plan: MutationPlan,
    snippets: Sequence[TrackingSnippet],
    log: ChangeLog,
) -> None:
    edits = {edit.snippet_id: edit for edit in plan.tracking_edits}
    for snippet in snippets:
        action, code = _decide(snippet, plan, edits)
        if action is None:
            continue
        if action == TrackingAction.replace and not code:
            log.omit(ChangeType.tracking, snippet.selector, before=snippet.type, reason="no replacement code")
            continue

        nodes = locate_snippet(document, snippet)
        if not nodes:
            log.omit(ChangeType.tracking, snippet.selector, before=snippet.code[:100], reason="snippet not found")
            continue

        locator = document.locate(nodes[0])
        if action == TrackingAction.remove:
            for node in nodes:
                node.decompose()
            _remove_companions(document, snippet)
            log.record(
                ChangeType.tracking, locator, before=snippet.code[:100], after="[removed]", reason=f"removed {snippet.type}"
            )
        else:
            for node in nodes:
                _replace(document, node, code)
            log.record(ChangeType.tracking, locator, before=snippet.code[:100], after=code[:100], reason=f"replaced {snippet.type}")


def locate_snippet(document: Document, snippet: TrackingSnippet) -> list[Tag]:
    nodes = document.select(snippet.selector)
    if nodes:
        return nodes

    code = snippet.code.strip()
    if code.startswith(("http", "//")):
        host = urlsplit(code if code.startswith("http") else f"https:{code}").netloc
        return [script for script in document.elements("script", src=True) if host and host in script["src"]]

    prefix = code[:50]
    signatures = TRACKING_SIGNATURES.get(snippet.type, ())
    found: list[Tag] = []
    for script in document.elements("script"):
        content = script.string or ""
        source = script.get("src") or ""
        if (prefix and prefix in content) or (not prefix and any(sig in source for sig in signatures)):
            found.append(script)
    return found


def _decide(snippet: TrackingSnippet, plan: MutationPlan, edits) -> tuple[TrackingAction | None, str | None]:
    edit = edits.get(snippet.id)
    if edit is not None:
        code = edit.replacement_code or plan.tracking_replacements.get(snippet.type)
        return edit.action, code
    if plan.remove_all_tracking:
        return TrackingAction.remove, None
    if snippet.type in plan.tracking_replacements:
        return TrackingAction.replace, plan.tracking_replacements[snippet.type]
    return None, None


def _replace(document: Document, node: Tag, code: str) -> None:
    if node.name == "script" and node.has_attr("src") and code.startswith(("http", "//")):
        node["src"] = code
        return
    if node.name == "script" and not code.lstrip().startswith("<"):
        node.string = code
        return
    fragment = document.fragment(code)
    if not fragment:
        node.decompose()
        return
    first, *rest = fragment
    node.replace_with(first)
    anchor = first
    for extra in rest:
        anchor.insert_after(extra)
        anchor = extra


def _remove_companions(document: Document, snippet: TrackingSnippet) -> None:
    if snippet.type == "facebook-pixel":
        for noscript in list(document.elements("noscript")):
            if "facebook.com/tr" in noscript.decode_contents():
                noscript.decompose()
    meta_name = VERIFICATION_META.get(snippet.type)
    if meta_name:
        for meta in list(document.elements("meta", attrs={"name": meta_name})):
            meta.decompose()


__all__ = ["locate_snippet", "rewrite_tracking"]
