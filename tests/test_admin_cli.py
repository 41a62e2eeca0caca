"""Smoke tests for the admin command line."""

from __future__ import annotations

import json
import sys
from pathlib import Path

from typer.testing import CliRunner

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plagannotate.admin_cli import app
from plagannotate.schema import initialize_annotation_db
from plagannotate.shared.database import fetch_all

from conftest import CASE_NAME

runner = CliRunner()


def _invoke(data_root: Path, db_path: Path, *args: str):
    return runner.invoke(app, ["--data-root", str(data_root), "--db", str(db_path), *args])


def test_review_workflow(data_root: Path, tmp_path: Path):
    db_path = tmp_path / "annotations.db"
    assert _invoke(data_root, db_path, "init-db").exit_code == 0
    assert _invoke(data_root, db_path, "add-user", "alice").exit_code == 0

    listed = _invoke(data_root, db_path, "datasets")
    assert "hw1-jplag" in listed.output

    cases = _invoke(data_root, db_path, "cases", "hw1")
    assert cases.exit_code == 0, cases.output
    assert "user001" in cases.output

    assessed = _invoke(
        data_root, db_path, "assess", "hw1", CASE_NAME, "--user", "alice", "--match", "2", "--level", "5"
    )
    assert assessed.exit_code == 0, assessed.output
    decided = _invoke(data_root, db_path, "decide", "hw1", CASE_NAME, "--user", "alice", "--level", "4")
    assert decided.exit_code == 0, decided.output

    db = initialize_annotation_db(db_path)
    with db.reader() as conn:
        rows = fetch_all(conn, "SELECT match_index, level FROM match_assessments ORDER BY match_index")
        levels = [tuple(row) for row in rows]
        decisions = fetch_all(conn, "SELECT dataset, level FROM decisions")
    assert levels == [(2, 5)]
    assert [tuple(row) for row in decisions] == [("hw1-jplag", 4)]

    shown = _invoke(data_root, db_path, "show-case", "hw1", CASE_NAME, "--user", "alice")
    assert shown.exit_code == 0, shown.output
    assert "assignment-1-user001-user002" in shown.output


def test_invalid_level_and_unknown_user_exit_nonzero(data_root: Path, tmp_path: Path):
    db_path = tmp_path / "annotations.db"
    _invoke(data_root, db_path, "add-user", "alice")
    bad_level = _invoke(data_root, db_path, "decide", "hw1", CASE_NAME, "--user", "alice", "--level", "9")
    assert bad_level.exit_code == 1
    unknown = _invoke(data_root, db_path, "decide", "hw1", CASE_NAME, "--user", "mallory", "--level", "3")
    assert unknown.exit_code == 1
    duplicate = _invoke(data_root, db_path, "add-user", "alice")
    assert duplicate.exit_code == 1


def test_build_queue_and_export(data_root: Path, tmp_path: Path):
    db_path = tmp_path / "annotations.db"
    queue_path = tmp_path / "selected_cases.json"
    result = _invoke(data_root, db_path, "build-queue", "--output", str(queue_path), "--k", "1")
    assert result.exit_code == 0, result.output
    entries = json.loads(queue_path.read_text(encoding="utf-8"))
    assert [entry["originalFilename"] for entry in entries] == ["assignment-1-carol-assignment-1-alice.json"]
    assert entries[0]["anonymizedFilename"] == "assignment-1-user003-user001"

    restricted = _invoke(data_root, db_path, "cases", "hw1", "--queue", str(queue_path))
    assert restricted.exit_code == 0, restricted.output
    assert entries[0]["anonymizedFilename"] in restricted.output
    assert "assignment-1-user001-user002" not in restricted.output

    shown = _invoke(data_root, db_path, "show-case", "hw1", entries[0]["originalFilename"])
    assert shown.exit_code == 0, shown.output
    assert entries[0]["anonymizedFilename"] in shown.output

    _invoke(data_root, db_path, "add-user", "alice")
    _invoke(data_root, db_path, "decide", "hw1", CASE_NAME, "--user", "alice", "--level", "2")
    exported = _invoke(data_root, db_path, "export", "--output-dir", str(tmp_path / "exports"))
    assert exported.exit_code == 0, exported.output
    assert (tmp_path / "exports" / "decisions.csv").exists()
    assert (tmp_path / "exports" / "match_assessments.jsonl").exists()
