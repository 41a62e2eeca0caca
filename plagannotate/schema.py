"""Database schema helpers."""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Optional

from .shared.database import Database, ensure_schema, table_columns
from .shared.models import ANNOTATION_MODELS, Decision, MatchAssessment
from .utils import ensure_dir

LOGGER = logging.getLogger(__name__)

DEFAULT_LEGACY_LEVEL = 3

INDEXES = [
    """CREATE INDEX IF NOT EXISTS idx_decisions_user_dataset ON decisions(user_id, dataset);""",
    """CREATE INDEX IF NOT EXISTS idx_assessments_case ON match_assessments(user_id, dataset, case_filename);""",
]

_ASSESSMENT_SPAN_COLUMNS = (
    "match_index, first_file, start1_line, start1_col, end1_line, end1_col, "
    "second_file, start2_line, start2_col, end2_line, end2_col"
)


def _table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (table,),
    ).fetchone()
    return row is not None


def needs_migration(conn: sqlite3.Connection) -> bool:
    for table in (Decision.__tablename__, MatchAssessment.__tablename__):
        if _table_exists(conn, table) and "dataset" not in table_columns(conn, table):
            return True
    return False


def migrate_legacy_tables(conn: sqlite3.Connection, default_dataset: str) -> list[str]:
    """Move pre-dataset decision and assessment tables under ``default_dataset``.

    Older databases keyed judgments by user and case only.  Rows are copied
    into the current tables with the given dataset; legacy decisions had no
    level and receive the neutral level.  Returns the migrated table names.
    """
    migrated: list[str] = []
    if _table_exists(conn, "decisions") and "dataset" not in table_columns(conn, "decisions"):
        LOGGER.info("Migrating decisions: adding dataset, level and comment")
        conn.execute("ALTER TABLE decisions RENAME TO decisions_old")
        Decision.create_table(conn)
        conn.execute(
            """
            INSERT INTO decisions(decision_id, user_id, dataset, case_filename, level, comment, timestamp)
            SELECT decision_id, user_id, ?, case_filename, ?, NULL, COALESCE(timestamp, CURRENT_TIMESTAMP)
            FROM decisions_old
            """,
            (default_dataset, DEFAULT_LEGACY_LEVEL),
        )
        conn.execute("DROP TABLE decisions_old")
        migrated.append("decisions")
    if _table_exists(conn, "match_assessments") and "dataset" not in table_columns(conn, "match_assessments"):
        LOGGER.info("Migrating match_assessments: adding dataset")
        conn.execute("ALTER TABLE match_assessments RENAME TO match_assessments_old")
        MatchAssessment.create_table(conn)
        conn.execute(
            f"""
            INSERT INTO match_assessments(
                assessment_id, user_id, dataset, case_filename, {_ASSESSMENT_SPAN_COLUMNS},
                level, comment, timestamp
            )
            SELECT assessment_id, user_id, ?, case_filename, {_ASSESSMENT_SPAN_COLUMNS},
                level, comment, COALESCE(timestamp, CURRENT_TIMESTAMP)
            FROM match_assessments_old
            """,
            (default_dataset,),
        )
        conn.execute("DROP TABLE match_assessments_old")
        migrated.append("match_assessments")
    return migrated


def initialize_annotation_db(path: Path | str, default_dataset: Optional[str] = None) -> Database:
    """Create or upgrade the annotation database and return a handle to it."""
    path = Path(path)
    ensure_dir(path.parent)
    db = Database(path)
    with db.transaction() as conn:
        if needs_migration(conn):
            if not default_dataset:
                raise ValueError("Legacy annotation tables found; a default dataset is required to migrate them")
            migrate_legacy_tables(conn, default_dataset)
        ensure_schema(conn, ANNOTATION_MODELS)
        for statement in INDEXES:
            conn.execute(statement)
    return db
