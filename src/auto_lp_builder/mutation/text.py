from __future__ import annotations

import html
from typing import Sequence

from bs4 import Tag

from ..document import Document
from ..models.edits import ChangeType, TextEdit
from .changelog import ChangeLog


def rewrite_text(
    document: Document,
    bindings: Sequence[tuple[TextEdit, Tag | None]],
    log: ChangeLog,
) -> None:
    """Replace the first verbatim occurrence of each edit's original fragment.

    ``bindings`` pairs each edit with the node its selector resolved to before
    any structural edit ran. Nodes removed since then count as no match.
    """
    for edit, node in bindings:
        if edit.replacement == edit.original:
            continue
        if node is None or not document.contains(node):
            log.omit(ChangeType.text, edit.selector, before=edit.original, reason="target not found")
            continue

        inner = node.decode_contents()
        candidates = (
            (html.escape(edit.original, quote=False), html.escape(edit.replacement, quote=False)),
            (edit.original, edit.replacement),
        )
        updated = None
        for needle, replacement in candidates:
            if needle and needle in inner:
                updated = inner.replace(needle, replacement, 1)
                break
        if updated is None:
            log.omit(ChangeType.text, document.locate(node), before=edit.original, reason="original text not found")
            continue

        node.clear()
        for child in document.fragment(updated):
            node.append(child)
        log.record(
            ChangeType.text,
            document.locate(node),
            before=edit.original,
            after=edit.replacement,
            reason=edit.reason or "text rewrite",
        )


__all__ = ["rewrite_text"]
