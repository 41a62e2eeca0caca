"""Persistence of per-match assessments and per-case decisions.

Every judgment is keyed by reviewer, dataset and case (plus match index for
assessments).  Writes go through ``INSERT ... ON CONFLICT DO UPDATE`` so a
resubmission replaces the stored level and comment and refreshes the
timestamp, and concurrent writes to one key serialize on SQLite's lock with
the last write winning.  An assessment batch is validated completely before
the single transaction that writes it is opened.
"""
from __future__ import annotations

import contextlib
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set, Tuple, Union

from .errors import AssessmentValidationError, StoreError, ValidationError
from .shared.database import Database, fetch_all, fetch_one
from .shared.models import Decision, Match, MatchAssessment
from .users import IdentityProvider
from .utils import ensure_case_filename, utc_timestamp

LOGGER = logging.getLogger(__name__)

MIN_LEVEL = 1
MAX_LEVEL = 5

_REQUIRED_TEXT = ("first_file", "second_file")
_REQUIRED_LINES = ("start1_line", "end1_line", "start2_line", "end2_line")
_OPTIONAL_COLUMNS = ("start1_col", "end1_col", "start2_col", "end2_col")


@contextlib.contextmanager
def _read_errors(what: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        LOGGER.exception("Failed to read %s", what)
        raise StoreError(f"Could not read {what}") from exc


def is_valid_level(level: object) -> bool:
    return isinstance(level, int) and not isinstance(level, bool) and MIN_LEVEL <= level <= MAX_LEVEL


def validate_level(level: object) -> int:
    if not is_valid_level(level):
        raise ValidationError(f"Level must be a number between {MIN_LEVEL} and {MAX_LEVEL}, got {level!r}")
    return int(level)  # type: ignore[arg-type]


@dataclass(frozen=True)
class AssessmentItem:
    """One entry of an assessment batch, in the wire format's column names."""

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
    comment: Optional[str] = None

    @classmethod
    def from_match(cls, match: Match, *, level: int, comment: Optional[str] = None) -> "AssessmentItem":
        return cls(
            match_index=match.index,
            first_file=match.first_path,
            start1_line=match.start_in_first.line,
            start1_col=match.start_in_first.column,
            end1_line=match.end_in_first.line,
            end1_col=match.end_in_first.column,
            second_file=match.second_path,
            start2_line=match.start_in_second.line,
            start2_col=match.start_in_second.column,
            end2_line=match.end_in_second.line,
            end2_col=match.end_in_second.column,
            level=level,
            comment=comment,
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "match_index": self.match_index,
            "first_file": self.first_file,
            "start1_line": self.start1_line,
            "start1_col": self.start1_col,
            "end1_line": self.end1_line,
            "end1_col": self.end1_col,
            "second_file": self.second_file,
            "start2_line": self.start2_line,
            "start2_col": self.start2_col,
            "end2_line": self.end2_line,
            "end2_col": self.end2_col,
            "level": self.level,
            "comment": self.comment,
        }


ItemInput = Union[AssessmentItem, Mapping[str, Any]]


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce_item(position: int, raw: ItemInput) -> AssessmentItem:
    if isinstance(raw, AssessmentItem):
        payload = raw.to_wire()
    elif isinstance(raw, Mapping):
        payload = dict(raw)
    else:
        raise AssessmentValidationError(position, "item must be an object")
    level = payload.get("level")
    if not is_valid_level(level):
        raise AssessmentValidationError(
            position,
            f"level must be a number between {MIN_LEVEL} and {MAX_LEVEL}",
            payload,
        )
    match_index = payload.get("match_index")
    if not _is_int(match_index) or match_index < 0:  # type: ignore[operator]
        raise AssessmentValidationError(position, "match_index must be a non-negative integer", payload)
    for key in _REQUIRED_TEXT:
        if not isinstance(payload.get(key), str) or not payload[key]:
            raise AssessmentValidationError(position, f"{key} is required", payload)
    for key in _REQUIRED_LINES:
        if not _is_int(payload.get(key)):
            raise AssessmentValidationError(position, f"{key} must be an integer", payload)
    for key in _OPTIONAL_COLUMNS:
        value = payload.get(key)
        if value is None:
            payload[key] = 0
        elif not _is_int(value):
            raise AssessmentValidationError(position, f"{key} must be an integer", payload)
    comment = payload.get("comment")
    if comment is not None and not isinstance(comment, str):
        raise AssessmentValidationError(position, "comment must be text", payload)
    return AssessmentItem(
        match_index=int(match_index),  # type: ignore[arg-type]
        first_file=str(payload["first_file"]).replace("\\", "/"),
        start1_line=payload["start1_line"],
        start1_col=payload["start1_col"],
        end1_line=payload["end1_line"],
        end1_col=payload["end1_col"],
        second_file=str(payload["second_file"]).replace("\\", "/"),
        start2_line=payload["start2_line"],
        start2_col=payload["start2_col"],
        end2_line=payload["end2_line"],
        end2_col=payload["end2_col"],
        level=int(level),  # type: ignore[arg-type]
        comment=comment or None,
    )


def validate_items(items: Sequence[ItemInput]) -> List[AssessmentItem]:
    """Validate a whole batch, raising on the first invalid item."""
    if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Sequence):
        raise ValidationError("Expected a list of assessment items")
    return [_coerce_item(position, raw) for position, raw in enumerate(items)]


class AssessmentStore:
    """Read and write reviewer judgments.

    ``datasets`` resolves a caller supplied dataset name to its canonical form
    (normally a :class:`~plagannotate.reports.ReportRepository`) and raises
    :class:`~plagannotate.errors.DatasetNotFoundError` for unknown names.
    """

    def __init__(self, db: Database, datasets: Any, identities: Optional[IdentityProvider] = None) -> None:
        self.db = db
        self.datasets = datasets
        self.identities = identities or IdentityProvider(db)

    def _resolve(self, username: str, dataset: str) -> Tuple[int, str]:
        resolved = self.datasets.resolve_dataset(dataset)
        return self.identities.user_id_for(username), resolved

    # ---------------------------------------------------------------- assessments
    def get_assessments(self, username: str, dataset: str, case_filename: str) -> List[MatchAssessment]:
        ensure_case_filename(case_filename)
        user_id, resolved = self._resolve(username, dataset)
        with _read_errors("assessments"), self.db.reader() as conn:
            rows = fetch_all(
                conn,
                """
                SELECT * FROM match_assessments
                WHERE user_id=? AND dataset=? AND case_filename=?
                ORDER BY match_index
                """,
                (user_id, resolved, case_filename),
            )
        return [MatchAssessment.from_row(row) for row in rows]

    def assessments_by_index(self, username: str, dataset: str, case_filename: str) -> Dict[int, Dict[str, object]]:
        return {
            row.match_index: row.to_wire()
            for row in self.get_assessments(username, dataset, case_filename)
        }

    def save_assessments(
        self,
        username: str,
        dataset: str,
        case_filename: str,
        items: Sequence[ItemInput],
    ) -> int:
        """Upsert a batch of assessments; nothing is written unless every item is valid.

        Returns the number of items written.
        """
        ensure_case_filename(case_filename)
        user_id, resolved = self._resolve(username, dataset)
        validated = validate_items(items)
        timestamp = utc_timestamp()
        records = [
            MatchAssessment(
                user_id=user_id,
                dataset=resolved,
                case_filename=case_filename,
                match_index=item.match_index,
                first_file=item.first_file,
                start1_line=item.start1_line,
                start1_col=item.start1_col,
                end1_line=item.end1_line,
                end1_col=item.end1_col,
                second_file=item.second_file,
                start2_line=item.start2_line,
                start2_col=item.start2_col,
                end2_line=item.end2_line,
                end2_col=item.end2_col,
                level=item.level,
                comment=item.comment,
                timestamp=timestamp,
            )
            for item in validated
        ]
        try:
            with self.db.transaction() as conn:
                MatchAssessment.upsert_many(conn, records)
        except sqlite3.Error as exc:
            LOGGER.exception("Failed to save assessments for %s/%s", resolved, case_filename)
            raise StoreError("Could not save assessments") from exc
        LOGGER.info(
            "Saved %d assessment(s) for user %s on %s/%s",
            len(records),
            username,
            resolved,
            case_filename,
        )
        return len(records)

    # ------------------------------------------------------------------ decisions
    def get_decision(self, username: str, dataset: str, case_filename: str) -> Optional[Decision]:
        ensure_case_filename(case_filename)
        user_id, resolved = self._resolve(username, dataset)
        with _read_errors("decision"), self.db.reader() as conn:
            row = fetch_one(
                conn,
                "SELECT * FROM decisions WHERE user_id=? AND dataset=? AND case_filename=?",
                (user_id, resolved, case_filename),
            )
        return Decision.from_row(row) if row is not None else None

    def get_decisions(self, username: str, dataset: str) -> Dict[str, Dict[str, object]]:
        user_id, resolved = self._resolve(username, dataset)
        with _read_errors("decisions"), self.db.reader() as conn:
            rows = fetch_all(
                conn,
                "SELECT * FROM decisions WHERE user_id=? AND dataset=? ORDER BY case_filename",
                (user_id, resolved),
            )
        return {row["case_filename"]: Decision.from_row(row).to_wire() for row in rows}

    def save_decision(
        self,
        username: str,
        dataset: str,
        case_filename: str,
        level: object,
        comment: Optional[str] = None,
    ) -> Decision:
        ensure_case_filename(case_filename)
        user_id, resolved = self._resolve(username, dataset)
        decision = Decision(
            user_id=user_id,
            dataset=resolved,
            case_filename=case_filename,
            level=validate_level(level),
            comment=comment or None,
            timestamp=utc_timestamp(),
        )
        try:
            with self.db.transaction() as conn:
                decision.upsert(conn)
        except sqlite3.Error as exc:
            LOGGER.exception("Failed to save decision for %s/%s", resolved, case_filename)
            raise StoreError("Could not save decision") from exc
        LOGGER.info("Saved decision %d for user %s on %s/%s", decision.level, username, resolved, case_filename)
        return decision

    def reviewed_cases(self, username: str, dataset: str) -> Set[str]:
        return set(self.get_decisions(username, dataset))

    def decision_levels(self, dataset: str, usernames: Optional[Iterable[str]] = None) -> Dict[str, Dict[str, int]]:
        """Decision levels per reviewer for ``dataset``: ``{username: {case: level}}``."""
        resolved = self.datasets.resolve_dataset(dataset)
        wanted = list(usernames) if usernames is not None else None
        for username in wanted or []:
            self.identities.user_id_for(username)
        with _read_errors("decision levels"), self.db.reader() as conn:
            rows = fetch_all(
                conn,
                """
                SELECT users.username AS username, decisions.case_filename AS case_filename,
                       decisions.level AS level
                FROM decisions JOIN users ON users.user_id = decisions.user_id
                WHERE decisions.dataset=?
                ORDER BY users.username, decisions.case_filename
                """,
                (resolved,),
            )
        levels: Dict[str, Dict[str, int]] = {name: {} for name in wanted or []}
        for row in rows:
            if wanted is not None and row["username"] not in wanted:
                continue
            levels.setdefault(row["username"], {})[row["case_filename"]] = int(row["level"])
        return levels
