"""Per-match annotation state held by a reviewer before it is submitted."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Mapping, Optional

from .shared.models import Match, MatchAssessment
from .store import AssessmentItem

DEFAULT_LEVEL = 3

_UNSET = object()


@dataclass(frozen=True)
class DraftEntry:
    level: Optional[int] = None
    comment: str = ""


@dataclass(frozen=True)
class AnnotationDraft:
    """Immutable mapping of match index to the reviewer's pending entry.

    Every edit returns a new draft keyed by the same match index used for
    persistence, so a submitted batch always reflects exactly the edits made.
    """

    entries: Mapping[int, DraftEntry] = field(default_factory=dict)

    @classmethod
    def from_assessments(cls, rows: Iterable[MatchAssessment]) -> "AnnotationDraft":
        return cls(
            entries={
                int(row.match_index): DraftEntry(level=row.level, comment=row.comment or "")
                for row in rows
            }
        )

    def get(self, index: int) -> Optional[DraftEntry]:
        return self.entries.get(index)

    def level_for(self, index: int, default: int = DEFAULT_LEVEL) -> int:
        entry = self.entries.get(index)
        if entry is None or entry.level is None:
            return default
        return entry.level

    def update(self, index: int, *, level: object = _UNSET, comment: object = _UNSET) -> "AnnotationDraft":
        current = self.entries.get(index, DraftEntry())
        changes: Dict[str, object] = {}
        if level is not _UNSET:
            changes["level"] = level
        if comment is not _UNSET:
            changes["comment"] = "" if comment is None else str(comment)
        updated = dict(self.entries)
        updated[index] = replace(current, **changes)
        return AnnotationDraft(entries=updated)

    @property
    def assessed_indices(self) -> frozenset:
        return frozenset(index for index, entry in self.entries.items() if entry.level is not None)

    def to_items(
        self,
        matches: Iterable[Match],
        default_level: int = DEFAULT_LEVEL,
        *,
        include_untouched: bool = True,
    ) -> List[AssessmentItem]:
        """Batch for the store, in report order.

        Matches the reviewer never touched get ``default_level``, or are left
        out entirely when ``include_untouched`` is false so no default is ever
        persisted.  Entries that were loaded or edited are sent as they are, so
        the store validates them.
        """
        items: List[AssessmentItem] = []
        for match in matches:
            entry = self.entries.get(match.index)
            if not include_untouched and (entry is None or entry.level is None):
                continue
            level = entry.level if entry is not None and entry.level is not None else default_level
            comment = entry.comment if entry is not None and entry.comment else None
            items.append(AssessmentItem.from_match(match, level=level, comment=comment))  # type: ignore[arg-type]
        return items
