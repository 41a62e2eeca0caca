"""Curated, fixed-size review queues built offline from the similarity reports."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from .anonymize import UsernameTable, anonymize
from .reports import ReportRepository
from .shared.sampling import DEFAULT_SAMPLE_SIZE, select_per_dataset
from .utils import ensure_dir

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class QueueEntry:
    dataset: str
    original_filename: str
    anonymized_filename: str
    similarity: float

    def to_json(self) -> Dict[str, object]:
        return {
            "dataset": self.dataset,
            "originalFilename": self.original_filename,
            "anonymizedFilename": self.anonymized_filename,
            "similarity": self.similarity,
        }

    @classmethod
    def from_json(cls, data: Dict[str, object]) -> "QueueEntry":
        return cls(
            dataset=str(data["dataset"]),
            original_filename=str(data["originalFilename"]),
            anonymized_filename=str(data["anonymizedFilename"]),
            similarity=float(data["similarity"]),  # type: ignore[arg-type]
        )


def build_review_queue(
    repository: ReportRepository,
    k: int = DEFAULT_SAMPLE_SIZE,
    table: Optional[UsernameTable] = None,
) -> Tuple[List[QueueEntry], UsernameTable]:
    """Select ``k`` cases per dataset spread over the similarity range.

    Reports are visited in sorted order and every filename is anonymized with
    one shared table, so rerunning over the same data yields the same queue
    and the same user IDs.
    """
    current = table if table is not None else UsernameTable()
    by_dataset: Dict[str, List[QueueEntry]] = {}
    for dataset, filename, similarity in repository.iter_similarity_reports():
        anonymized, current = anonymize(filename, current)
        by_dataset.setdefault(dataset, []).append(
            QueueEntry(
                dataset=dataset,
                original_filename=filename,
                anonymized_filename=anonymized,
                similarity=similarity,
            )
        )
    selected = select_per_dataset(by_dataset, k)
    entries = [entry for dataset_entries in selected.values() for entry in dataset_entries]
    LOGGER.info("Selected %d cases across %d datasets", len(entries), len(selected))
    return entries, current


def write_review_queue(path: Path, entries: Sequence[QueueEntry]) -> Path:
    ensure_dir(path.parent)
    path.write_text(
        json.dumps([entry.to_json() for entry in entries], indent=2),
        encoding="utf-8",
    )
    return path


def load_review_queue(path: Path) -> List[QueueEntry]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"Review queue {path} must contain a list")
    return [QueueEntry.from_json(item) for item in data]


def restrict_to_queue(
    cases: Iterable[T],
    entries: Iterable[QueueEntry],
    dataset: str,
    *,
    key=lambda case: getattr(case, "filename"),
) -> List[T]:
    """Cases of ``dataset`` that appear in the queue, in queue order."""
    lookup = {key(case): case for case in cases}
    restricted: List[T] = []
    seen = set()
    for entry in entries:
        if entry.dataset != dataset or entry.original_filename in seen:
            continue
        case = lookup.get(entry.original_filename)
        if case is not None:
            restricted.append(case)
            seen.add(entry.original_filename)
    return restricted
