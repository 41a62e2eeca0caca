import json
import sys
from pathlib import Path

import pandas as pd

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plagannotate.drafts import AnnotationDraft
from plagannotate.export import ASSESSMENT_COLUMNS, DECISION_COLUMNS, case_summary, export_judgments

from conftest import CASE_NAME


def test_export_writes_csv_and_jsonl(store, tmp_path: Path):
    store.identities.register("bob")
    store.save_decision("alice", "hw1-jplag", CASE_NAME, 4, "shared helper")
    store.save_decision("bob", "hw1-jplag", CASE_NAME, 2)
    report = store.datasets.load_case("hw1-jplag", CASE_NAME)
    store.save_assessments("alice", "hw1-jplag", CASE_NAME, AnnotationDraft().to_items(report.matches))

    paths = export_judgments(store.db, tmp_path / "exports")

    decisions = pd.read_csv(paths.decisions_csv)
    assert list(decisions.columns) == DECISION_COLUMNS
    assert decisions["username"].tolist() == ["alice", "bob"]
    assessments = pd.read_csv(paths.assessments_csv)
    assert list(assessments.columns) == ASSESSMENT_COLUMNS
    assert assessments["match_index"].tolist() == [0, 1, 2]
    lines = paths.decisions_jsonl.read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[0])["comment"] == "shared helper"


def test_export_of_empty_store(db, tmp_path: Path):
    paths = export_judgments(db, tmp_path / "exports", dataset="hw1-jplag")
    assert pd.read_csv(paths.decisions_csv).empty
    assert paths.assessments_jsonl.read_text(encoding="utf-8") == ""


def test_case_summary_aggregates_levels(store):
    store.identities.register("bob")
    store.save_decision("alice", "hw1-jplag", CASE_NAME, 5)
    store.save_decision("bob", "hw1-jplag", CASE_NAME, 2)
    summary = case_summary(store.db, "hw1-jplag")
    row = summary.iloc[0]
    assert row["case_filename"] == CASE_NAME
    assert row["reviewers"] == 2
    assert row["mean_level"] == 3.5
    assert (row["min_level"], row["max_level"]) == (2, 5)
