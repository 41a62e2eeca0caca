"""Tabular exports of stored judgments."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd

from .shared.database import Database
from .utils import ensure_dir

DECISION_COLUMNS = ["username", "dataset", "case_filename", "level", "comment", "timestamp"]
ASSESSMENT_COLUMNS = [
    "username",
    "dataset",
    "case_filename",
    "match_index",
    "first_file",
    "start1_line",
    "start1_col",
    "end1_line",
    "end1_col",
    "second_file",
    "start2_line",
    "start2_col",
    "end2_line",
    "end2_col",
    "level",
    "comment",
    "timestamp",
]


@dataclass
class ExportPaths:
    decisions_csv: Path
    decisions_jsonl: Path
    assessments_csv: Path
    assessments_jsonl: Path


def _frame(db: Database, table: str, columns: list[str], dataset: Optional[str]) -> pd.DataFrame:
    selected = ", ".join(
        "users.username AS username" if column == "username" else f"{table}.{column} AS {column}"
        for column in columns
    )
    sql = f"SELECT {selected} FROM {table} JOIN users ON users.user_id = {table}.user_id"
    params: list[object] = []
    if dataset is not None:
        sql += f" WHERE {table}.dataset = ?"
        params.append(dataset)
    order = "username, dataset, case_filename"
    if table == "match_assessments":
        order += ", match_index"
    sql += f" ORDER BY {order}"
    with db.reader() as conn:
        df = pd.read_sql_query(sql, conn, params=params)
    if df.empty:
        return pd.DataFrame({column: pd.Series(dtype="object") for column in columns})
    return df[columns]


def decisions_frame(db: Database, dataset: Optional[str] = None) -> pd.DataFrame:
    return _frame(db, "decisions", DECISION_COLUMNS, dataset)


def assessments_frame(db: Database, dataset: Optional[str] = None) -> pd.DataFrame:
    return _frame(db, "match_assessments", ASSESSMENT_COLUMNS, dataset)


def case_summary(db: Database, dataset: Optional[str] = None) -> pd.DataFrame:
    """Per case: number of reviewers, mean and spread of their decision levels."""
    decisions = decisions_frame(db, dataset)
    if decisions.empty:
        return pd.DataFrame(
            {
                "dataset": pd.Series(dtype="object"),
                "case_filename": pd.Series(dtype="object"),
                "reviewers": pd.Series(dtype="int64"),
                "mean_level": pd.Series(dtype="float64"),
                "min_level": pd.Series(dtype="int64"),
                "max_level": pd.Series(dtype="int64"),
            }
        )
    grouped = decisions.groupby(["dataset", "case_filename"], sort=True)["level"]
    summary = grouped.agg(reviewers="count", mean_level="mean", min_level="min", max_level="max")
    return summary.reset_index()


def export_judgments(db: Database, directory: Path, dataset: Optional[str] = None) -> ExportPaths:
    exports_dir = ensure_dir(directory)
    paths = ExportPaths(
        decisions_csv=exports_dir / "decisions.csv",
        decisions_jsonl=exports_dir / "decisions.jsonl",
        assessments_csv=exports_dir / "match_assessments.csv",
        assessments_jsonl=exports_dir / "match_assessments.jsonl",
    )
    for frame, csv_path, jsonl_path in (
        (decisions_frame(db, dataset), paths.decisions_csv, paths.decisions_jsonl),
        (assessments_frame(db, dataset), paths.assessments_csv, paths.assessments_jsonl),
    ):
        frame.to_csv(csv_path, index=False)
        if frame.empty:
            jsonl_path.write_text("", encoding="utf-8")
        else:
            frame.to_json(jsonl_path, orient="records", lines=True)
    return paths
