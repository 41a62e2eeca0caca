import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plagannotate.review_queue import build_review_queue, load_review_queue, restrict_to_queue, write_review_queue

from conftest import write_report


def test_build_review_queue_anonymizes_and_samples(repository, data_root: Path):
    for i in range(5):
        write_report(data_root / "hw2-jplag", f"assignment-2-s{i}-assignment-2-t{i}.json", i / 10)
    entries, table = build_review_queue(repository, k=3)
    hw1 = [entry for entry in entries if entry.dataset == "hw1-jplag"]
    hw2 = [entry for entry in entries if entry.dataset == "hw2-jplag"]
    assert [entry.similarity for entry in hw1] == [0.3, 0.8]
    assert [entry.similarity for entry in hw2] == [0.0, 0.2, 0.4]
    assert hw1[1].anonymized_filename == "assignment-1-user001-user002"
    assert hw1[0].anonymized_filename == "assignment-1-user003-user001"
    assert len(table) == 13


def test_queue_file_round_trip_and_restriction(repository, tmp_path: Path):
    entries, _ = build_review_queue(repository, k=1)
    path = write_review_queue(tmp_path / "out" / "selected_cases.json", entries)
    loaded = load_review_queue(path)
    assert loaded == entries
    cases = repository.list_cases("hw1-jplag")
    restricted = restrict_to_queue(cases, loaded, "hw1-jplag")
    assert [case.filename for case in restricted] == ["assignment-1-carol-assignment-1-alice.json"]
