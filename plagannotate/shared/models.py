"""Dataclass style records for similarity reports and the annotation schema.

Report types mirror the JSON written by the external similarity detector and
are read-only.  The persistent records inherit from :class:`Record`, which
provides helpers for creating tables and upserting rows by their unique key.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..errors import ReportFormatError
from .database import Record

ROLE_FIRST = "first"
ROLE_SECOND = "second"

MAX_SIMILARITY_KEY = "MAX"


def normalize_path(path: str) -> str:
    return str(path).replace("\\", "/")


# ------------------------------ report data --------------------------------- #


@dataclass(frozen=True, order=True)
class Position:
    line: int
    column: int = 0

    @classmethod
    def from_json(cls, data: Any) -> "Position":
        if not isinstance(data, Mapping) or "line" not in data:
            raise ReportFormatError(f"Invalid position {data!r}")
        column = data.get("column", data.get("col", 0))
        try:
            return cls(line=int(data["line"]), column=int(column or 0))
        except (TypeError, ValueError) as exc:
            raise ReportFormatError(f"Invalid position {data!r}") from exc


@dataclass(frozen=True)
class Match:
    """One matched span pair; ``index`` is its position in the report."""

    index: int
    first_file: str
    second_file: str
    start_in_first: Position
    end_in_first: Position
    start_in_second: Position
    end_in_second: Position

    @classmethod
    def from_json(cls, index: int, data: Any) -> "Match":
        if not isinstance(data, Mapping):
            raise ReportFormatError(f"Match {index} is not an object")
        try:
            match = cls(
                index=index,
                first_file=str(data["firstFile"]),
                second_file=str(data["secondFile"]),
                start_in_first=Position.from_json(data["startInFirst"]),
                end_in_first=Position.from_json(data["endInFirst"]),
                start_in_second=Position.from_json(data["startInSecond"]),
                end_in_second=Position.from_json(data["endInSecond"]),
            )
        except KeyError as exc:
            raise ReportFormatError(f"Match {index} is missing {exc.args[0]}") from exc
        if match.start_in_first > match.end_in_first or match.start_in_second > match.end_in_second:
            raise ReportFormatError(f"Match {index} ends before it starts")
        return match

    @property
    def first_path(self) -> str:
        return normalize_path(self.first_file)

    @property
    def second_path(self) -> str:
        return normalize_path(self.second_file)

    @property
    def file_pair(self) -> Tuple[str, str]:
        return self.first_path, self.second_path

    def span(self, role: str) -> Tuple[Position, Position]:
        if role == ROLE_FIRST:
            return self.start_in_first, self.end_in_first
        if role == ROLE_SECOND:
            return self.start_in_second, self.end_in_second
        raise ValueError(f"Unknown file role {role!r}")

    def covers(self, role: str, line: int) -> bool:
        start, end = self.span(role)
        return start.line <= line <= end.line


@dataclass(frozen=True)
class CaseSummary:
    filename: str
    similarities: Mapping[str, float] = field(default_factory=dict)

    @property
    def similarity(self) -> Optional[float]:
        value = self.similarities.get(MAX_SIMILARITY_KEY)
        return float(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else None


@dataclass(frozen=True)
class CaseReport:
    dataset: str
    filename: str
    similarities: Mapping[str, float]
    matches: Tuple[Match, ...]

    @classmethod
    def from_json(cls, dataset: str, filename: str, data: Any) -> "CaseReport":
        if not isinstance(data, Mapping):
            raise ReportFormatError(f"Report {filename} is not an object")
        similarities = data.get("similarities") or {}
        if not isinstance(similarities, Mapping):
            raise ReportFormatError(f"Report {filename} has invalid similarities")
        raw_matches = data.get("matches") or []
        if not isinstance(raw_matches, list):
            raise ReportFormatError(f"Report {filename} has invalid matches")
        matches = tuple(Match.from_json(idx, item) for idx, item in enumerate(raw_matches))
        return cls(dataset=dataset, filename=filename, similarities=dict(similarities), matches=matches)

    @property
    def similarity(self) -> Optional[float]:
        return CaseSummary(self.filename, self.similarities).similarity

    def source_paths(self) -> List[str]:
        """Distinct normalized source paths in first-encounter order."""
        seen: Dict[str, None] = {}
        for match in self.matches:
            seen.setdefault(match.first_path, None)
            seen.setdefault(match.second_path, None)
        return list(seen)


# ---------------------------- annotations.db -------------------------------- #


@dataclass
class User(Record):
    username: str
    user_id: Optional[int] = None

    __tablename__ = "users"
    __autoincrement__ = ("user_id",)
    __schema__ = (
        """
        CREATE TABLE IF NOT EXISTS users (
            user_id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT UNIQUE NOT NULL
        )
        """
    )


@dataclass
class Decision(Record):
    user_id: int
    dataset: str
    case_filename: str
    level: int
    comment: Optional[str]
    timestamp: str
    decision_id: Optional[int] = None

    __tablename__ = "decisions"
    __key__ = ("user_id", "dataset", "case_filename")
    __updatable__ = ("level", "comment", "timestamp")
    __autoincrement__ = ("decision_id",)
    __schema__ = (
        """
        CREATE TABLE IF NOT EXISTS decisions (
            decision_id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            dataset TEXT NOT NULL,
            case_filename TEXT NOT NULL,
            level INTEGER NOT NULL CHECK(level BETWEEN 1 AND 5),
            comment TEXT,
            timestamp TEXT NOT NULL,
            FOREIGN KEY(user_id) REFERENCES users(user_id),
            UNIQUE(user_id, dataset, case_filename)
        )
        """
    )

    def to_wire(self) -> Dict[str, object]:
        return {"level": self.level, "comment": self.comment, "timestamp": self.timestamp}


@dataclass
class MatchAssessment(Record):
    user_id: int
    dataset: str
    case_filename: str
    match_index: int
    first_file: str
    start1_line: int
    start1_col: int
    end1_line: int
    end1_col: int
    second_file: str
    start2_line: int
    start2_col: int
    end2_line: int
    end2_col: int
    level: int
    comment: Optional[str]
    timestamp: str
    assessment_id: Optional[int] = None

    __tablename__ = "match_assessments"
    __key__ = ("user_id", "dataset", "case_filename", "match_index")
    __updatable__ = ("level", "comment", "timestamp")
    __autoincrement__ = ("assessment_id",)
    __schema__ = (
        """
        CREATE TABLE IF NOT EXISTS match_assessments (
            assessment_id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            dataset TEXT NOT NULL,
            case_filename TEXT NOT NULL,
            match_index INTEGER NOT NULL,
            first_file TEXT NOT NULL,
            start1_line INTEGER NOT NULL,
            start1_col INTEGER NOT NULL,
            end1_line INTEGER NOT NULL,
            end1_col INTEGER NOT NULL,
            second_file TEXT NOT NULL,
            start2_line INTEGER NOT NULL,
            start2_col INTEGER NOT NULL,
            end2_line INTEGER NOT NULL,
            end2_col INTEGER NOT NULL,
            level INTEGER NOT NULL CHECK(level BETWEEN 1 AND 5),
            comment TEXT,
            timestamp TEXT NOT NULL,
            FOREIGN KEY(user_id) REFERENCES users(user_id),
            UNIQUE(user_id, dataset, case_filename, match_index)
        )
        """
    )

    def to_wire(self) -> Dict[str, object]:
        return {"level": self.level, "comment": self.comment, "timestamp": self.timestamp}


ANNOTATION_MODELS = (User, Decision, MatchAssessment)
