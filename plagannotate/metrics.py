"""Agreement metrics over reviewers' plagiarism levels."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

LEVELS = (1, 2, 3, 4, 5)


def percent_agreement(unit_values: Iterable[Sequence[Optional[Hashable]]]) -> float:
    """Share of cases on which every reviewer who judged it gave the same level."""
    total = 0
    agree = 0
    for values in unit_values:
        observed = [value for value in values if value is not None]
        if len(observed) < 2:
            continue
        total += 1
        if len(set(observed)) == 1:
            agree += 1
    return agree / total if total else 0.0


def cohens_kappa(pairs: Sequence[Tuple[Optional[Hashable], Optional[Hashable]]]) -> float:
    """Compute Cohen's kappa for matched reviewer pairs."""
    filtered = [(a, b) for a, b in pairs if a is not None and b is not None]
    if not filtered:
        return 0.0
    total = len(filtered)
    categories = {value for pair in filtered for value in pair}
    agreement = sum(1 for a, b in filtered if a == b) / total
    counts_a = Counter(a for a, _ in filtered)
    counts_b = Counter(b for _, b in filtered)
    pe = sum((counts_a[cat] / total) * (counts_b[cat] / total) for cat in categories)
    if pe == 1.0:
        return 1.0
    return (agreement - pe) / (1 - pe)


def fleiss_kappa(matrix: List[List[int]]) -> float:
    """Compute Fleiss' kappa given matrix counts per category per subject."""
    if not matrix:
        return 0.0
    n = len(matrix)
    k = len(matrix[0])
    totals = [0] * k
    for row in matrix:
        for j, count in enumerate(row):
            totals[j] += count
    n_raters = sum(matrix[0]) if matrix else 0
    if n_raters == 0:
        return 0.0
    p_j = [total / (n * n_raters) for total in totals]
    p_i = []
    for row in matrix:
        row_total = sum(row)
        if row_total <= 1:
            p_i.append(0.0)
            continue
        agreement = sum(count * (count - 1) for count in row)
        p_i.append(agreement / (row_total * (row_total - 1)))
    p_bar = sum(p_i) / n
    p_e = sum(p**2 for p in p_j)
    if p_e == 1:
        return 1.0
    return (p_bar - p_e) / (1 - p_e)


@dataclass
class AgreementReport:
    reviewers: List[str]
    shared_cases: List[str]
    percent: float
    pairwise_kappa: Dict[Tuple[str, str], float]
    fleiss: Optional[float]


def level_matrix(levels: Mapping[str, Mapping[str, int]], cases: Sequence[str]) -> List[List[int]]:
    matrix: List[List[int]] = []
    for case in cases:
        counter = Counter(by_case[case] for by_case in levels.values() if case in by_case)
        matrix.append([counter.get(level, 0) for level in LEVELS])
    return matrix


def decision_agreement(levels: Mapping[str, Mapping[str, int]]) -> AgreementReport:
    """Agreement of case decisions; ``levels`` is ``{reviewer: {case: level}}``.

    Only cases judged by every reviewer count, so Fleiss' kappa sees the same
    number of raters per case.
    """
    reviewers = sorted(levels)
    if reviewers:
        shared = set.intersection(*(set(levels[name]) for name in reviewers))
    else:
        shared = set()
    cases = sorted(shared)
    percent = percent_agreement([[levels[name][case] for name in reviewers] for case in cases])
    pairwise: Dict[Tuple[str, str], float] = {}
    for a, b in combinations(reviewers, 2):
        both = sorted(set(levels[a]) & set(levels[b]))
        pairwise[(a, b)] = cohens_kappa([(levels[a][case], levels[b][case]) for case in both])
    fleiss = fleiss_kappa(level_matrix(levels, cases)) if len(reviewers) > 2 and cases else None
    return AgreementReport(
        reviewers=reviewers,
        shared_cases=cases,
        percent=percent,
        pairwise_kappa=pairwise,
        fleiss=fleiss,
    )
