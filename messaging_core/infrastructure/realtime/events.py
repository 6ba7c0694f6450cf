"""Helpers turning domain entities into change event records."""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any

from messaging_core.domain.entities import ChangeEvent

# Fields filled in for viewers that are not columns of the underlying row.
_ENRICHMENT_FIELDS = frozenset({"sender", "read_by", "user", "user_name", "other_participants"})


def _normalize_datetime_values(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _normalize_datetime_values(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_datetime_values(item) for item in value]
    return value


def serialize_record(entity: Any) -> dict[str, Any]:
    """Return the persisted fields of ``entity`` as JSON compatible values."""

    if is_dataclass(entity) and not isinstance(entity, type):
        data = asdict(entity)
    elif isinstance(entity, dict):
        data = dict(entity)
    else:
        raise TypeError(f"Cannot serialize {type(entity).__name__} as a change record")
    for key in _ENRICHMENT_FIELDS:
        data.pop(key, None)
    return _normalize_datetime_values(data)


def change_event(event: str, table: str, entity: Any) -> ChangeEvent:
    return ChangeEvent(event=event, table=table, record=serialize_record(entity))


__all__ = ["change_event", "serialize_record"]
