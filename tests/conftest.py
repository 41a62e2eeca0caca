from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plagannotate.reports import ReportRepository
from plagannotate.schema import initialize_annotation_db
from plagannotate.store import AssessmentStore
from plagannotate.users import IdentityProvider

CASE_NAME = "assignment-1-alice-assignment-1-bob.json"


def match_json(first: str, second: str, lines1: tuple[int, int], lines2: tuple[int, int]) -> dict:
    return {
        "firstFile": first,
        "secondFile": second,
        "startInFirst": {"line": lines1[0], "column": 0},
        "endInFirst": {"line": lines1[1], "column": 4},
        "startInSecond": {"line": lines2[0], "column": 0},
        "endInSecond": {"line": lines2[1], "column": 4},
    }


def write_report(directory: Path, name: str, similarity: float, matches: list[dict] | None = None) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    payload = {"similarities": {"MAX": similarity, "AVG": similarity / 2}, "matches": matches or []}
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    root = tmp_path / "data"
    dataset = root / "hw1-jplag"
    write_report(
        dataset,
        CASE_NAME,
        0.8,
        [
            match_json("alice\\Main.java", "bob/Main.java", (1, 3), (2, 4)),
            match_json("alice/Util.java", "bob/Util.java", (5, 6), (5, 6)),
            match_json("alice/Main.java", "bob/Main.java", (3, 5), (6, 8)),
        ],
    )
    write_report(dataset, "assignment-1-carol-assignment-1-alice.json", 0.3)
    files = dataset / "files"
    files.mkdir()
    (files / "alice").mkdir()
    (files / "bob").mkdir()
    (files / "alice" / "Main.java").write_text("a1\na2\na3\na4\na5\n", encoding="utf-8")
    (files / "bob" / "Main.java").write_text("b1\nb2\nb3\nb4\nb5\nb6\nb7\nb8\n", encoding="utf-8")
    (root / "hw2-jplag").mkdir()
    return root


@pytest.fixture
def repository(data_root: Path) -> ReportRepository:
    return ReportRepository(data_root)


@pytest.fixture
def db(tmp_path: Path):
    return initialize_annotation_db(tmp_path / "annotations.db")


@pytest.fixture
def store(db, repository: ReportRepository) -> AssessmentStore:
    IdentityProvider(db).register("alice")
    return AssessmentStore(db, repository)
