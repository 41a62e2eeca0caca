import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plagannotate.shared.models import CaseSummary
from plagannotate.shared.sampling import sample_indices, select_cases, select_per_dataset


def _cases(count: int):
    return [(f"case-{i:02d}", i / 100) for i in range(count)]


def test_small_population_is_returned_sorted():
    cases = [("b", 0.9), ("a", 0.1), ("c", 0.5)]
    assert select_cases(cases, k=10) == [("a", 0.1), ("c", 0.5), ("b", 0.9)]


def test_spread_includes_both_ends_when_interval_divides():
    selected = select_cases(list(reversed(_cases(19))), k=10)
    assert [name for name, _ in selected] == [f"case-{i:02d}" for i in range(0, 19, 2)]
    assert selected[-1] == ("case-18", 0.18)


def test_truncated_interval_can_miss_the_top():
    assert sample_indices(11, 10) == list(range(10))


def test_single_pick_takes_lowest_similarity():
    assert sample_indices(5, 1) == [0]
    assert select_cases(_cases(5), k=1) == [("case-00", 0.0)]


def test_zero_sample_size_is_rejected():
    with pytest.raises(ValueError):
        sample_indices(5, 0)


def test_ties_keep_input_order():
    cases = [("x", 0.5), ("y", 0.5), ("z", 0.5)]
    assert select_cases(cases, k=2) == [("x", 0.5), ("z", 0.5)]


def test_select_accepts_objects_with_similarity():
    class Case:
        def __init__(self, similarity):
            self.similarity = similarity

    cases = [Case(0.7), Case(0.2)]
    assert [case.similarity for case in select_cases(cases)] == [0.2, 0.7]


def test_select_per_dataset_samples_each_dataset():
    selected = select_per_dataset({"a": _cases(3), "b": _cases(30)}, k=4)
    assert len(selected["a"]) == 3
    assert [sim for _, sim in selected["b"]] == [0.0, 0.09, 0.18, 0.27]


def test_case_without_similarity_is_rejected():
    with pytest.raises(ValueError):
        select_cases([CaseSummary("a.json", {"MAX": 0.4}), CaseSummary("b.json", {})])
