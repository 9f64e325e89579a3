"""
Handle/PID domain models.

- PID: immutable ``prefix/suffix`` pair, compared and hashed by its canonical string
- TypeDescriptor: metadata resolved for a PID that is used as an entry type
- RecordEntry: one typed value of a PID record
- PIDRecord: a PID plus its ordered entries
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

_PID_RE = re.compile(r"^[0-9A-Za-z]+.[0-9A-Za-z]+/[!-~]+$")
_RESERVED_PREFIX_RE = re.compile(r"^(0$|0\.|HS_|10320$)")


@dataclass(frozen=True)
class PID:
    """A Handle-style persistent identifier."""

    prefix: str
    suffix: str

    def __str__(self) -> str:
        return f"{self.prefix}/{self.suffix}"

    @property
    def key(self) -> str:
        return str(self)

    @staticmethod
    def is_pid(text: Any) -> bool:
        return isinstance(text, str) and _PID_RE.match(text) is not None

    @classmethod
    def from_string(cls, text: str) -> "PID":
        """Split ``text`` on its first slash; raises ValueError for non-PIDs."""
        if not cls.is_pid(text):
            raise ValueError(f"Invalid PID: {text!r}")
        prefix, suffix = text.split("/", 1)
        return cls(prefix=prefix, suffix=suffix)

    def is_resolvable_prefix(self) -> bool:
        """Reserved and administrative prefixes (0, 0.*, HS_*, 10320) are never resolved."""
        return _RESERVED_PREFIX_RE.match(self.prefix.upper()) is None

    def to_dict(self) -> Dict[str, str]:
        return {"prefix": self.prefix, "suffix": self.suffix}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PID":
        return cls(prefix=str(data["prefix"]), suffix=str(data["suffix"]))


# Entry type that points at the alternate locations (10320/loc) of a record.
LOCATION_TYPE = PID("10320", "loc")


@dataclass
class TypeDescriptor:
    """Human-facing description of a PID used as a record entry type."""

    pid: PID
    name: str
    description: str = ""
    redirect_url: str = ""
    registry_payload: Dict[str, Any] = field(default_factory=dict)
    regex: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pid": self.pid.to_dict(),
            "name": self.name,
            "description": self.description,
            "redirect_url": self.redirect_url,
            "registry_payload": self.registry_payload,
            "regex": self.regex,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TypeDescriptor":
        return cls(
            pid=PID.from_dict(data["pid"]),
            name=data.get("name") or "",
            description=data.get("description") or "",
            redirect_url=data.get("redirect_url") or "",
            registry_payload=data.get("registry_payload") or {},
            regex=data.get("regex"),
        )


EntryType = Union[str, PID, TypeDescriptor]


@dataclass
class RecordEntry:
    index: int
    type: EntryType
    data: Dict[str, Any]
    ttl: Optional[int] = None
    timestamp: Optional[int] = None  # epoch milliseconds

    @property
    def type_label(self) -> str:
        """Readable name of the entry type: descriptor name, PID string or raw text."""
        if isinstance(self.type, TypeDescriptor):
            return self.type.name or str(self.type.pid)
        return str(self.type)

    @property
    def value(self) -> str:
        raw = self.data.get("value") if isinstance(self.data, dict) else self.data
        if isinstance(raw, str):
            return raw
        return "" if raw is None else str(raw)

    def is_location_entry(self) -> bool:
        if isinstance(self.type, TypeDescriptor):
            return self.type.pid == LOCATION_TYPE
        return str(self.type) == str(LOCATION_TYPE)

    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.type, TypeDescriptor):
            type_payload: Dict[str, Any] = {"kind": "descriptor", "descriptor": self.type.to_dict()}
        elif isinstance(self.type, PID):
            type_payload = {"kind": "pid", "pid": self.type.to_dict()}
        else:
            type_payload = {"kind": "string", "string": self.type}
        return {
            "index": self.index,
            "type": type_payload,
            "data": self.data,
            "ttl": self.ttl,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecordEntry":
        raw_type = data.get("type") or {}
        kind = raw_type.get("kind")
        if kind == "descriptor":
            entry_type: EntryType = TypeDescriptor.from_dict(raw_type["descriptor"])
        elif kind == "pid":
            entry_type = PID.from_dict(raw_type["pid"])
        else:
            entry_type = str(raw_type.get("string") or "")
        return cls(
            index=int(data.get("index") or 0),
            type=entry_type,
            data=data.get("data") or {},
            ttl=data.get("ttl"),
            timestamp=data.get("timestamp"),
        )


@dataclass
class PIDRecord:
    pid: PID
    entries: List[RecordEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"pid": self.pid.to_dict(), "entries": [e.to_dict() for e in self.entries]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PIDRecord":
        return cls(
            pid=PID.from_dict(data["pid"]),
            entries=[RecordEntry.from_dict(e) for e in data.get("entries") or []],
        )
