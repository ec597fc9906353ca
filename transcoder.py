"""
Bidirectional key mapping between the domain shape (camelCase) and the store
shape (snake_case).

The generic rule is a mechanical case change applied key by key. A declarative
override table keyed by (entity type, field) takes precedence over it; "*"
matches every entity type, and an entity-specific entry wins over a "*" entry.
Keys that neither rule knows about pass through the generic rule unchanged.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from utils import parse_datetime_maybe, to_iso_utc

_UPPER_RE = re.compile(r"[A-Z]")
_UNDERSCORE_RE = re.compile(r"_([a-z])")


def camel_to_snake(key: str) -> str:
    return _UPPER_RE.sub(lambda m: "_" + m.group(0).lower(), key)


def snake_to_camel(key: str) -> str:
    return _UNDERSCORE_RE.sub(lambda m: m.group(1).upper(), key)


def split_scheduled_at(value: Any) -> dict[str, Any]:
    """
    Fan a timestamp out into the `date` (full UTC timestamp) and `time`
    (HH:MM:SS.mmm) columns. Offsets are normalized to UTC; values that are not
    ISO-8601 go into both columns unchanged.
    """
    dt = parse_datetime_maybe(value, strict=True) if isinstance(value, (str, datetime)) else None
    if dt is None:
        return {"date": value, "time": value}
    iso = to_iso_utc(dt)
    return {"date": iso, "time": iso.split("T", 1)[1].rstrip("Z")}


@dataclass(frozen=True)
class KeyOverride:
    entity: str
    domain_key: str
    # Columns written on the way to the store; empty means the generic rule applies outbound.
    store_keys: tuple[str, ...] = ()
    # Store column read back into domain_key; None means no inbound override.
    reverse_from: Optional[str] = None
    # Inbound mapping is skipped when the row already has a truthy value under this store key.
    unless_present: Optional[str] = None
    fan_out: Optional[Callable[[Any], dict[str, Any]]] = None


OVERRIDES: tuple[KeyOverride, ...] = (
    KeyOverride("*", "appliedAt", ("applied_date",), "applied_date"),
    KeyOverride("jobs", "employmentType", ("type",), "type"),
    KeyOverride("*", "skills", (), "requirements", unless_present="skills"),
    KeyOverride("interviews", "panelType", ("type",), "type"),
    KeyOverride("interviews", "scheduledAt", ("date", "time"), "date", fan_out=split_scheduled_at),
    KeyOverride("audit_log", "entity", ("entity_type",), "entity_type"),
)

# Store columns with no domain counterpart; `date` already carries the full timestamp.
READ_DROPS: frozenset[tuple[str, str]] = frozenset({("interviews", "time")})

_OUTBOUND = {(o.entity, o.domain_key): o for o in OVERRIDES if o.store_keys}
_INBOUND = {(o.entity, o.reverse_from): o for o in OVERRIDES if o.reverse_from}


def _lookup(table: dict, entity_type: str, key: str) -> Optional[KeyOverride]:
    return table.get((entity_type, key)) or table.get(("*", key))


def to_store_shape(entity_type: str, obj: Optional[Mapping[str, Any]]) -> Optional[dict[str, Any]]:
    if obj is None:
        return None
    out: dict[str, Any] = {}
    claimed: set[str] = set()
    for key, value in obj.items():
        override = _lookup(_OUTBOUND, entity_type, key)
        if override is None:
            new_key = camel_to_snake(key)
            if new_key not in claimed:
                out[new_key] = value
            continue

        if override.fan_out is not None:
            parts = override.fan_out(value)
        else:
            parts = {k: value for k in override.store_keys}
        out.update(parts)
        claimed.update(parts)
    return out


def to_domain_shape(entity_type: str, obj: Optional[Mapping[str, Any]]) -> Optional[dict[str, Any]]:
    if obj is None:
        return None
    out: dict[str, Any] = {}
    claimed: set[str] = set()
    for key, value in obj.items():
        if (entity_type, key) in READ_DROPS:
            continue

        override = _lookup(_INBOUND, entity_type, key)
        if override is not None and override.unless_present and obj.get(override.unless_present):
            override = None

        if override is None:
            new_key = snake_to_camel(key)
            if new_key not in claimed:
                out[new_key] = value
            continue

        out[override.domain_key] = value
        claimed.add(override.domain_key)
    return out
