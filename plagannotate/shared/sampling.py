"""Stratified selection of a fixed-size review subset across the similarity range."""
from __future__ import annotations

from typing import Dict, List, Mapping, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_SAMPLE_SIZE = 10


def similarity_of(case: object) -> float:
    """Similarity of a ``(filename, similarity)`` pair or of an object exposing ``similarity``."""
    value = case[1] if isinstance(case, tuple) else getattr(case, "similarity", None)
    if value is None:
        raise ValueError(f"Case {case!r} has no similarity to sample on")
    return float(value)


def sample_indices(count: int, k: int) -> List[int]:
    """Positions picked from a population of ``count`` items sorted by similarity.

    When ``count <= k`` every position is returned.  Otherwise positions are
    spaced ``(count - 1) // (k - 1)`` apart.  Repeated positions are kept.
    """
    if k < 1:
        raise ValueError("Sample size must be at least 1")
    if count <= k:
        return list(range(count))
    interval = (count - 1) // (k - 1) if k > 1 else 0
    indices: List[int] = []
    for i in range(k):
        index = min(i * interval, count - 1)
        if interval == 0 and i > 0:
            index = count - 1
        indices.append(index)
    return indices


def select_cases(cases: Sequence[T], k: int = DEFAULT_SAMPLE_SIZE) -> List[T]:
    """Return ``min(k, len(cases))`` cases spread over the similarity distribution.

    Sorting is stable, so cases with equal similarity keep their input order,
    which makes the selection reproducible for the same input.
    """
    ordered = sorted(cases, key=similarity_of)
    return [ordered[index] for index in sample_indices(len(ordered), k)]


def select_per_dataset(
    cases_by_dataset: Mapping[str, Sequence[T]], k: int = DEFAULT_SAMPLE_SIZE
) -> Dict[str, List[T]]:
    return {dataset: select_cases(cases, k) for dataset, cases in cases_by_dataset.items()}
