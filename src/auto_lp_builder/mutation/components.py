from __future__ import annotations

from typing import Sequence

from bs4 import Tag

from ..document import Document
from ..models.edits import ChangeType, ComponentToggles, ImageHandling
from ..models.structure import PageSection
from .changelog import ChangeLog

VIDEO_HOSTS = ("youtube.com", "youtu.be", "vimeo.com", "wistia", "player.")
BUTTON_CLASS_HINTS = ("btn", "button", "cta")


def remove_sections(
    document: Document,
    requested: Sequence[str],
    sections: Sequence[PageSection],
    log: ChangeLog,
) -> None:
    """Remove sections named by id or type; anything else is tried as a selector."""
    targets: list[tuple[str, list[Tag]]] = []
    for key in requested:
        matched = [section for section in sections if key in (section.id, section.type)]
        selectors = [section.selector for section in matched] if matched else [key]
        targets.append((key, [node for selector in selectors for node in document.select(selector)]))

    for key, nodes in targets:
        removed = False
        for node in nodes:
            if not document.contains(node):
                continue
            locator = document.locate(node)
            node.decompose()
            log.record(ChangeType.structure, locator, before=key, reason="section removed")
            removed = True
        if not removed:
            log.omit(ChangeType.structure, key, before=key, reason="section not found")


def toggle_components(document: Document, toggles: ComponentToggles, log: ChangeLog) -> None:
    if toggles.is_default():
        return
    if not toggles.include_forms:
        _remove_all(document, list(document.elements("form")), "form disabled", log)
    if not toggles.include_videos:
        videos = list(document.elements("video"))
        videos += [
            frame
            for frame in document.elements("iframe")
            if any(host in (frame.get("src") or "") for host in VIDEO_HOSTS)
        ]
        _remove_all(document, videos, "video disabled", log)
    if not toggles.include_lists:
        lists = [node for node in document.elements(["ul", "ol"]) if node.find_parent(["ul", "ol"]) is None]
        _remove_all(document, lists, "list disabled", log)

    images = list(document.elements("img"))
    if toggles.image_handling == ImageHandling.remove:
        _remove_all(document, images, "image removed", log)
    elif toggles.image_handling == ImageHandling.placeholder:
        for image in images:
            before = image.get("src")
            width = image.get("width") or "600"
            height = image.get("height") or "400"
            image["src"] = f"https://placehold.co/{width}x{height}"
            log.record(ChangeType.component, document.locate(image), before=before, after=image["src"], reason="image placeholder")

    if toggles.button_text or toggles.button_url:
        for button in _buttons(document):
            locator = document.locate(button)
            if toggles.button_text:
                before = button.get_text(strip=True)
                button.string = toggles.button_text
                log.record(ChangeType.component, locator, before=before, after=toggles.button_text, reason="button text")
            if toggles.button_url and button.name == "a":
                before = button.get("href")
                button["href"] = toggles.button_url
                log.record(ChangeType.component, locator, before=before, after=toggles.button_url, reason="button url")


def _buttons(document: Document) -> list[Tag]:
    buttons: list[Tag] = list(document.elements("button"))
    for anchor in document.elements("a"):
        classes = " ".join(anchor.get("class") or []).lower()
        if any(hint in classes for hint in BUTTON_CLASS_HINTS):
            buttons.append(anchor)
    return buttons


def _remove_all(document: Document, nodes: list[Tag], reason: str, log: ChangeLog) -> None:
    # Locators are taken before each removal so they describe the tree the node left.
    for node in nodes:
        if not document.contains(node):
            continue
        locator = document.locate(node)
        name = node.name
        node.decompose()
        log.record(ChangeType.component, locator, before=name, reason=reason)


__all__ = ["remove_sections", "toggle_components"]
