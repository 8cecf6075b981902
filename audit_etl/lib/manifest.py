"""Per-entry ingestion manifest.

One record per archive entry name, created on first lookup and amended once
the entry has been parsed. Statuses:

- missing      entry not in the archive
- present      entry found, not (yet) judged
- partial      found but empty, malformed, or only partly usable
- full         fully ingested
- placeholder  access-denied / login-required stub
"""
from __future__ import annotations

import copy
from typing import Any, Dict, Optional

__all__ = [
    "MISSING",
    "PRESENT",
    "PARTIAL",
    "FULL",
    "PLACEHOLDER",
    "STATUSES",
    "Manifest",
]

MISSING = "missing"
PRESENT = "present"
PARTIAL = "partial"
FULL = "full"
PLACEHOLDER = "placeholder"

STATUSES = frozenset({MISSING, PRESENT, PARTIAL, FULL, PLACEHOLDER})
_FIELDS = frozenset({"status", "rows", "size", "note"})


class Manifest:
    def __init__(self) -> None:
        self._entries: Dict[str, Dict[str, Any]] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, name: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(name)
        return dict(entry) if entry is not None else None

    def status(self, name: str) -> Optional[str]:
        entry = self._entries.get(name)
        return entry["status"] if entry else None

    def record(self, name: str, status: str, **fields: Any) -> None:
        """Create the record for ``name``. Later calls for the same name are ignored."""
        if name in self._entries:
            return
        entry = {"status": status}
        entry.update(fields)
        self._validate(entry)
        self._entries[name] = entry

    def amend(self, name: str, **fields: Any) -> None:
        if name not in self._entries:
            raise KeyError(f"no manifest record for {name!r}")
        entry = dict(self._entries[name])
        entry.update(fields)
        self._validate(entry)
        self._entries[name] = entry

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self._entries)

    @staticmethod
    def _validate(entry: Dict[str, Any]) -> None:
        unknown = set(entry) - _FIELDS
        if unknown:
            raise ValueError(f"unknown manifest fields: {sorted(unknown)}")
        if entry["status"] not in STATUSES:
            raise ValueError(f"unknown manifest status: {entry['status']!r}")
