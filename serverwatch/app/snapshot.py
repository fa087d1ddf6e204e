"""
Snapshot value types and their stored JSON form.

A snapshot is the ordered list of StatusEntry values read from one page
load. The stored form is a UTF-8 JSON array of {"name", "status"}
objects, in the same order.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


class CorruptStoredValue(ValueError):
    """Stored bytes are not a well-formed serialized snapshot."""


@dataclass(frozen=True)
class StatusEntry:
    name: str
    status: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "status": self.status}


Snapshot = List[StatusEntry]


@dataclass(frozen=True)
class ChangeEvent:
    """Previous and current snapshot of a detected change."""
    previous: Snapshot
    current: Snapshot

    def to_message(self) -> Dict[str, Any]:
        return {
            "type": "STATUS_CHANGE",
            "payload": to_payload(self.current),
            "oldPayload": to_payload(self.previous),
        }


def to_payload(snapshot: Snapshot) -> List[Dict[str, str]]:
    return [e.to_dict() for e in snapshot]


def serialize(snapshot: Snapshot) -> bytes:
    return json.dumps(to_payload(snapshot), ensure_ascii=False).encode("utf-8")


def deserialize(raw: Optional[bytes]) -> Snapshot:
    """
    Parse stored bytes back into a Snapshot.

    Raises CorruptStoredValue for anything other than a JSON array of
    objects carrying string "name" and "status" fields.
    """
    if raw is None:
        raise CorruptStoredValue("no stored value")
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorruptStoredValue(f"undecodable snapshot: {e}") from e

    if not isinstance(data, list):
        raise CorruptStoredValue(f"expected a list, got {type(data).__name__}")

    out: Snapshot = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise CorruptStoredValue(f"entry {i} is not an object")
        name, status = item.get("name"), item.get("status")
        if not isinstance(name, str) or not isinstance(status, str):
            raise CorruptStoredValue(f"entry {i} lacks string name/status")
        out.append(StatusEntry(name=name, status=status))
    return out
