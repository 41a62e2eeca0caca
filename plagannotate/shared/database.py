"""Lightweight SQLite helpers and simple ORM primitives for plagannotate."""
from __future__ import annotations

import contextlib
import sqlite3
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Type, TypeVar

Row = sqlite3.Row
T = TypeVar("T", bound="Record")


class Database:
    """A thin wrapper around sqlite3 with sane defaults for a shared annotation file.

    WAL journaling lets reviewers read while another reviewer writes, and the
    busy timeout makes concurrent writers queue behind SQLite's write lock
    instead of failing immediately.
    """

    def __init__(self, path: Path | str, *, timeout: float = 30.0) -> None:
        self.path = Path(path)
        if not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout

    def _apply_pragmas(self, conn: sqlite3.Connection) -> None:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, timeout=self.timeout)
        self._apply_pragmas(conn)
        return conn

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self.connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextlib.contextmanager
    def reader(self) -> Iterator[sqlite3.Connection]:
        conn = self.connect()
        try:
            yield conn
        finally:
            conn.close()


class Record:
    """Base class for ORM style records.

    Subclasses declare ``__key__``, the columns of their unique constraint, and
    ``__updatable__``, the columns refreshed when an upsert hits that key.
    Columns listed in ``__autoincrement__`` are left to SQLite on insert.
    """

    __tablename__: str = ""
    __schema__: str = ""
    __key__: Tuple[str, ...] = ()
    __updatable__: Tuple[str, ...] = ()
    __autoincrement__: Tuple[str, ...] = ()

    @classmethod
    def create_table(cls, conn: sqlite3.Connection) -> None:
        if not cls.__schema__:
            raise ValueError(f"{cls.__name__} does not define __schema__")
        conn.execute(cls.__schema__)

    @classmethod
    def column_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]  # type: ignore[arg-type]

    @classmethod
    def insert_columns(cls) -> List[str]:
        return [name for name in cls.column_names() if name not in cls.__autoincrement__]

    @classmethod
    def from_row(cls: Type[T], row: Row) -> T:
        keys = row.keys()
        data = {field.name: row[field.name] for field in fields(cls) if field.name in keys}  # type: ignore[arg-type]
        return cls(**data)  # type: ignore[arg-type]

    def to_row(self) -> Dict[str, Any]:
        values = asdict(self)  # type: ignore[call-overload]
        return values

    @classmethod
    def upsert_sql(cls) -> str:
        if not cls.__key__ or not cls.__updatable__:
            raise ValueError(f"{cls.__name__} does not define an upsert key")
        columns = cls.insert_columns()
        placeholders = ", ".join(":" + name for name in columns)
        updates = ", ".join(f"{name}=excluded.{name}" for name in cls.__updatable__)
        return (
            f"INSERT INTO {cls.__tablename__} ({', '.join(columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT({', '.join(cls.__key__)}) DO UPDATE SET {updates}"
        )

    @classmethod
    def upsert_many(cls, conn: sqlite3.Connection, records: Iterable[T]) -> None:
        conn.executemany(cls.upsert_sql(), [r.to_row() for r in records])

    def upsert(self, conn: sqlite3.Connection) -> None:
        conn.execute(self.upsert_sql(), self.to_row())


def ensure_schema(conn: sqlite3.Connection, models: Sequence[Type[Record]]) -> None:
    for model in models:
        model.create_table(conn)


def fetch_all(conn: sqlite3.Connection, sql: str, params: Sequence[Any] | None = None) -> List[sqlite3.Row]:
    cur = conn.execute(sql, params or [])
    return cur.fetchall()


def fetch_one(conn: sqlite3.Connection, sql: str, params: Sequence[Any] | None = None) -> Optional[sqlite3.Row]:
    cur = conn.execute(sql, params or [])
    return cur.fetchone()


def table_columns(conn: sqlite3.Connection, table: str) -> List[str]:
    return [row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()]
