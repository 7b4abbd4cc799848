"""Partial updates with change tracking.

``TasksService.update`` uses this to apply only the
fields a caller actually supplied and to log exactly what changed.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass
class UpdateResult:
    """Result of applying updates to an entity.

    Attributes:
        applied: True if any changes were made.
        changes: Field names mapped to their new (log-friendly) values.
    """

    applied: bool = False
    changes: dict[str, Any] = field(default_factory=dict)


def _payload_to_dict(payload: Mapping[str, Any] | Any) -> dict[str, Any]:
    if hasattr(payload, "model_dump"):
        return payload.model_dump(exclude_unset=True)
    if isinstance(payload, Mapping):
        return dict(payload)
    return {k: v for k, v in vars(payload).items() if not k.startswith("_")}


def apply_updates(
    entity: Any,
    payload: Mapping[str, Any] | Any,
    *,
    exclude: set[str] | None = None,
    transform: dict[str, Callable[[Any], Any]] | None = None,
    skip_none: bool = False,
) -> UpdateResult:
    """Copy changed fields from ``payload`` onto ``entity``.

    Pydantic payloads contribute only the fields that were explicitly set,
    so an omitted field is left untouched while an explicit ``None`` clears
    it (unless ``skip_none`` is set).

    Args:
        entity: Target ORM instance.
        payload: Pydantic model, mapping, or plain object.
        exclude: Field names never copied (e.g. ``{"id", "created_at"}``).
        transform: Per-field converters applied to the change log value only.
        skip_none: Ignore ``None`` values in the payload.

    Returns:
        UpdateResult describing what changed.
    """
    exclude = exclude or set()
    transform = transform or {}
    changes: dict[str, Any] = {}

    for field_name, new_value in _payload_to_dict(payload).items():
        if field_name in exclude:
            continue
        if skip_none and new_value is None:
            continue

        if getattr(entity, field_name, None) != new_value:
            setattr(entity, field_name, new_value)
            convert = transform.get(field_name)
            changes[field_name] = convert(new_value) if convert else new_value

    return UpdateResult(applied=bool(changes), changes=changes)
