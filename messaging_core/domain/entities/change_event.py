"""Row-level change event broadcast through the propagation channel."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

EVENT_INSERT = "insert"
EVENT_UPDATE = "update"
EVENT_DELETE = "delete"
CHANGE_EVENTS = frozenset({EVENT_INSERT, EVENT_UPDATE, EVENT_DELETE})


@dataclass(frozen=True)
class ChangeEvent:
    """An insert, update or delete applied to ``table``.

    ``record`` holds only the persisted columns of the row, already converted
    to JSON compatible values.
    """

    event: str
    table: str
    record: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": "change",
            "event": self.event,
            "table": self.table,
            "record": dict(self.record),
        }


__all__ = [
    "ChangeEvent",
    "CHANGE_EVENTS",
    "EVENT_INSERT",
    "EVENT_UPDATE",
    "EVENT_DELETE",
]
