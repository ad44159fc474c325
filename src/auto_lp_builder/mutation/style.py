from __future__ import annotations

import re
from typing import Mapping

from ..document import Document
from ..models.edits import ChangeType, StyleEdit
from .changelog import ChangeLog


def rewrite_styles(document: Document, edit: StyleEdit, log: ChangeLog) -> None:
    """Swap colour and font tokens inside style blocks and inline styles."""
    tokens: dict[str, str] = {**dict(edit.color_map), **dict(edit.font_map)}
    if tokens:
        matched = _substitute(document, tokens, log)
        for token in tokens:
            if token not in matched:
                log.omit(ChangeType.style, None, before=token, reason="style token not found")

    if edit.custom_css:
        style = document.soup.new_tag("style")
        style["data-injected"] = "custom"
        style.string = edit.custom_css
        document.head().append(style)
        log.record(ChangeType.style, document.locate(style), after=edit.custom_css, reason="custom css")


def _substitute(document: Document, tokens: Mapping[str, str], log: ChangeLog) -> set[str]:
    matched: set[str] = set()
    for block in list(document.elements("style")):
        css = block.string
        if css is None:
            continue
        updated = _replace_tokens(css, tokens, matched, log, document.locate(block))
        if updated != css:
            block.string = updated

    for node in list(document.elements(style=True)):
        css = node["style"]
        updated = _replace_tokens(css, tokens, matched, log, document.locate(node))
        if updated != css:
            node["style"] = updated
    return matched


def _replace_tokens(
    css: str,
    tokens: Mapping[str, str],
    matched: set[str],
    log: ChangeLog,
    locator: str,
) -> str:
    candidates = sorted((token for token in tokens if token and token in css), key=len, reverse=True)
    if not candidates:
        return css
    used: set[str] = set()

    def swap(match: re.Match[str]) -> str:
        used.add(match.group(0))
        return tokens[match.group(0)]

    # One pass, longest token first, so a replacement is never matched again.
    css = re.sub("|".join(re.escape(token) for token in candidates), swap, css)
    matched.update(used)
    for token in tokens:
        if token in used and tokens[token] != token:
            log.record(ChangeType.style, locator, before=token, after=tokens[token], reason="style token")
    return css


__all__ = ["rewrite_styles"]
