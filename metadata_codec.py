"""
Packing of column-less attributes into a free-text notes field.

Layout: ``<note>\\n\\n__METADATA__\\n<json object>``. Records written this way
by older clients stay readable through `unpack`; new writes only pack when the
store has no dedicated columns (INTERVIEW_METADATA_MODE=notes).
"""
from __future__ import annotations

import json
import logging
from typing import Any, NamedTuple, Optional

from utils import MappingError

log = logging.getLogger(__name__)

SENTINEL = "__METADATA__"

# Entity types whose notes may carry a packed block, and the fields that ride in it.
PACKED_FIELDS: dict[str, tuple[str, ...]] = {
    "interviews": ("mode", "interviewers"),
}


class UnpackedNotes(NamedTuple):
    note: str
    aux: Optional[dict[str, Any]]


def pack(note: Optional[str], aux: dict[str, Any]) -> str:
    return f"{note or ''}\n\n{SENTINEL}\n{json.dumps(aux)}"


def _parse_block(block: str) -> dict[str, Any]:
    try:
        parsed = json.loads(block)
    except ValueError as e:
        raise MappingError(f"metadata block is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise MappingError(f"metadata block must be a JSON object, got {type(parsed).__name__}")
    return parsed


def unpack(text: Optional[str]) -> UnpackedNotes:
    if not isinstance(text, str) or SENTINEL not in text:
        return UnpackedNotes(text or "", None)

    prefix, _, block = text.partition(SENTINEL)
    try:
        aux = _parse_block(block.strip())
    except MappingError as e:
        log.warning("Failed to parse metadata from notes; keeping raw text: %s", e)
        return UnpackedNotes(text, None)
    return UnpackedNotes(prefix.strip(), aux)


def decode_notes_fields(entity_type: str, row: dict[str, Any]) -> dict[str, Any]:
    """Split a packed notes value back into `notes` plus its auxiliary fields (domain shape)."""
    if entity_type not in PACKED_FIELDS or not isinstance(row.get("notes"), str):
        return row

    unpacked = unpack(row["notes"])
    if unpacked.aux is None:
        return row

    out = dict(row)
    out["notes"] = unpacked.note
    for key, value in unpacked.aux.items():
        # Dedicated columns win over a stale packed copy.
        if out.get(key) in (None, "", []):
            out[key] = value
    return out


def split_packed_fields(entity_type: str, data: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Separate the fields that must ride in notes from the rest of a domain payload."""
    fields = PACKED_FIELDS.get(entity_type, ())
    rest = {k: v for k, v in data.items() if k not in fields}
    aux = {k: data[k] for k in fields if k in data}
    return rest, aux
