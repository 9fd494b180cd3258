# app/core/checklist.py
"""Ordered step log attached to payment responses.

Entries are appended while a request handler runs and returned to the caller
as-is. Nothing is persisted; the list only describes what this request did.
"""
from __future__ import annotations

from typing import Iterable, List

from pydantic import BaseModel

from app.utils.enums import ChecklistStatus


class ChecklistItem(BaseModel):
    step: str
    status: ChecklistStatus
    detail: str


class Checklist:
    """Append-only list of ChecklistItem entries for a single request."""

    def __init__(self, items: Iterable[ChecklistItem] | None = None):
        self._items: List[ChecklistItem] = list(items or [])

    def passed(self, step: str, detail: str) -> ChecklistItem:
        return self._append(step, ChecklistStatus.passed, detail)

    def failed(self, step: str, detail: str) -> ChecklistItem:
        return self._append(step, ChecklistStatus.failed, detail)

    def skipped(self, step: str, detail: str) -> ChecklistItem:
        return self._append(step, ChecklistStatus.skipped, detail)

    def extend(self, other: "Checklist") -> None:
        self._items.extend(other._items)

    def _append(self, step: str, status: ChecklistStatus, detail: str) -> ChecklistItem:
        item = ChecklistItem(step=step, status=status, detail=detail)
        self._items.append(item)
        return item

    @property
    def items(self) -> List[ChecklistItem]:
        return list(self._items)

    @property
    def last(self) -> ChecklistItem | None:
        return self._items[-1] if self._items else None

    def has_failures(self) -> bool:
        return any(item.status == ChecklistStatus.failed for item in self._items)

    def to_list(self) -> list[dict]:
        return [item.model_dump(mode="json") for item in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)
