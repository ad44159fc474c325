from __future__ import annotations

from ..models.edits import ChangeLogEntry, ChangeType


class ChangeLog:
    """Append-only record of what a mutation pass did and did not do."""

    def __init__(self) -> None:
        self._entries: list[ChangeLogEntry] = []

    def record(
        self,
        type: ChangeType,
        selector: str | None,
        *,
        before: str | None = None,
        after: str | None = None,
        reason: str = "",
    ) -> None:
        self._entries.append(
            ChangeLogEntry(type=type, selector=selector, before=before, after=after, reason=reason)
        )

    def omit(self, type: ChangeType, selector: str | None, *, before: str | None = None, reason: str) -> None:
        self._entries.append(
            ChangeLogEntry(type=type, selector=selector, before=before, reason=reason, applied=False)
        )

    @property
    def entries(self) -> tuple[ChangeLogEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["ChangeLog"]
