from __future__ import annotations

import logging
from typing import Iterator

import soupsieve
from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

PATH_PREFIX = "@path"


class Document:
    """Mutable page tree owned by one pipeline stage at a time.

    Selectors are either CSS selectors or path locators (``@path/0/1/3``), the
    element-child indices leading from the root to a node. A path locator
    only describes the tree it was computed on; call :meth:`locate` again
    after any edit that changes the tree's shape.
    """

    def __init__(self, soup: BeautifulSoup) -> None:
        self._soup = soup

    @classmethod
    def parse(cls, html: str) -> "Document":
        return cls(BeautifulSoup(html, "html.parser"))

    @property
    def soup(self) -> BeautifulSoup:
        return self._soup

    def serialize(self) -> str:
        return str(self._soup)

    def copy(self) -> "Document":
        return Document.parse(self.serialize())

    def select(self, selector: str | None) -> list[Tag]:
        """Resolve a selector against the current tree; stale or invalid selectors match nothing."""
        if not selector:
            return []
        if selector.startswith(PATH_PREFIX):
            node = self._resolve_path(selector)
            return [node] if node is not None else []
        try:
            return list(self._soup.select(selector))
        except soupsieve.SelectorSyntaxError:
            logger.debug("Ignoring invalid selector", extra={"selector": selector})
            return []

    def select_one(self, selector: str | None) -> Tag | None:
        matches = self.select(selector)
        return matches[0] if matches else None

    def locate(self, node: Tag) -> str:
        """Path locator of ``node`` in the current tree."""
        indices: list[int] = []
        current = node
        while current.parent is not None:
            siblings = [child for child in current.parent.children if isinstance(child, Tag)]
            indices.append(next(i for i, child in enumerate(siblings) if child is current))
            current = current.parent
        return "/".join([PATH_PREFIX, *(str(index) for index in reversed(indices))])

    def contains(self, node: Tag) -> bool:
        """Whether ``node`` is still attached to this tree."""
        if node.decomposed:
            return False
        current: Tag | None = node
        while current is not None:
            if current is self._soup:
                return True
            current = current.parent
        return False

    def elements(self, name: str | None = None, **attrs: object) -> Iterator[Tag]:
        yield from self._soup.find_all(name, **attrs)

    def head(self) -> Tag:
        head = self._soup.find("head")
        if head is None:
            head = self._soup.new_tag("head")
            html = self._soup.find("html")
            if html is not None:
                html.insert(0, head)
            else:
                self._soup.insert(0, head)
        return head

    def body(self) -> Tag:
        body = self._soup.find("body")
        if body is not None:
            return body
        html = self._soup.find("html")
        return html if html is not None else self._soup

    def fragment(self, markup: str) -> list:
        """Parse ``markup`` into detached nodes ready for insertion."""
        return list(BeautifulSoup(markup, "html.parser").contents)

    def _resolve_path(self, selector: str) -> Tag | None:
        parts = [part for part in selector[len(PATH_PREFIX):].split("/") if part]
        current: Tag = self._soup
        for part in parts:
            if not part.isdigit():
                return None
            children = [child for child in current.children if isinstance(child, Tag)]
            index = int(part)
            if index >= len(children):
                return None
            current = children[index]
        return current


__all__ = ["Document", "PATH_PREFIX"]
