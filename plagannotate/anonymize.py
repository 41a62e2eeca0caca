"""Deterministic anonymization of the usernames embedded in report filenames.

Report files are named ``assignment-<N1>-<userA>-assignment-<N2>-<userB>.json``.
Each raw username is replaced by a sequential ``user<NNN>`` identifier that is
assigned on first encounter.  The username table is an explicit value passed in
and returned by every call so independent runs never share state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Tuple

LOGGER = logging.getLogger(__name__)

SEPARATOR = "-assignment-"
REPORT_SUFFIX = ".json"
UNKNOWN_USER = "?"


def format_user_id(number: int) -> str:
    return f"user{number:03d}"


@dataclass(frozen=True)
class UsernameTable:
    """Raw username to anonymized ID mapping plus the next counter value."""

    mapping: Mapping[str, str] = field(default_factory=dict)
    next_id: int = 1

    def get(self, username: str) -> Optional[str]:
        return self.mapping.get(username)

    def assign(self, username: str) -> Tuple[str, "UsernameTable"]:
        existing = self.mapping.get(username)
        if existing is not None:
            return existing, self
        user_id = format_user_id(self.next_id)
        updated = dict(self.mapping)
        updated[username] = user_id
        return user_id, UsernameTable(mapping=updated, next_id=self.next_id + 1)

    def __len__(self) -> int:
        return len(self.mapping)

    def to_dict(self) -> Dict[str, object]:
        return {"mapping": dict(self.mapping), "next_id": self.next_id}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "UsernameTable":
        mapping = {str(k): str(v) for k, v in dict(data.get("mapping") or {}).items()}  # type: ignore[arg-type]
        return cls(mapping=mapping, next_id=int(data.get("next_id", len(mapping) + 1)))  # type: ignore[arg-type]


def split_usernames(filename: str) -> Optional[Tuple[str, str, str, str]]:
    """Return ``(assignment1, userA, assignment2, userB)`` or ``None`` when malformed."""
    stem = filename[: -len(REPORT_SUFFIX)] if filename.endswith(REPORT_SUFFIX) else filename
    parts = stem.split(SEPARATOR)
    if len(parts) != 2:
        return None
    first = parts[0].split("-")
    second = parts[1].split("-")
    if len(first) < 3 or len(second) < 2:
        return None
    return first[1], "-".join(first[2:]), second[0], "-".join(second[1:])


def anonymize(filename: str, table: Optional[UsernameTable] = None) -> Tuple[str, UsernameTable]:
    """Anonymize ``filename`` and return it with the (possibly extended) table.

    Malformed names are returned unchanged together with the input table.  The
    output keeps only the first assignment number.
    """
    current = table if table is not None else UsernameTable()
    parsed = split_usernames(filename)
    if parsed is None:
        LOGGER.warning("Unexpected filename format, skipping anonymization: %s", filename)
        return filename, current
    assignment_a, username_a, _assignment_b, username_b = parsed
    id_a, current = current.assign(username_a)
    id_b, current = current.assign(username_b)
    return f"assignment-{assignment_a}-{id_a}-{id_b}", current


def anonymize_all(
    filenames: Iterable[str], table: Optional[UsernameTable] = None
) -> Tuple[Dict[str, str], UsernameTable]:
    current = table if table is not None else UsernameTable()
    names: Dict[str, str] = {}
    for filename in filenames:
        names[filename], current = anonymize(filename, current)
    return names, current


def parse_anonymized_filename(name: Optional[str]) -> Tuple[str, str]:
    """Return the two display IDs encoded at the end of an anonymized name."""
    if not name:
        return UNKNOWN_USER, UNKNOWN_USER
    parts = name.split("-")
    if len(parts) < 4:
        return UNKNOWN_USER, UNKNOWN_USER
    return parts[-2], parts[-1]
