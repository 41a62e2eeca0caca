"""Runtime configuration resolved from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .reports import ReportRepository
    from .shared.database import Database


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError:
        return default


def _env_path(name: str, default: str) -> Path:
    val = os.getenv(name)
    return Path(val) if val else Path(default)


@dataclass
class AppConfig:
    data_root: Path = field(default_factory=lambda: _env_path("PLAGANNOTATE_DATA_ROOT", "data"))
    database_path: Path = field(default_factory=lambda: _env_path("PLAGANNOTATE_DB", "annotations.db"))
    dataset_suffix: str = field(
        default_factory=lambda: os.getenv("PLAGANNOTATE_DATASET_SUFFIX", "-jplag")
    )
    files_dirname: str = "files"
    sample_size: int = field(default_factory=lambda: _env_int("PLAGANNOTATE_SAMPLE_SIZE", 10) or 10)
    log_level: str = field(default_factory=lambda: os.getenv("PLAGANNOTATE_LOG_LEVEL", "INFO"))

    @classmethod
    def from_env(cls, **overrides: object) -> "AppConfig":
        """Build a config from the environment, letting explicit values win."""
        config = cls()
        for key, value in overrides.items():
            if value is None:
                continue
            if not hasattr(config, key):
                raise TypeError(f"Unknown config option {key}")
            if key in {"data_root", "database_path"}:
                value = Path(value)  # type: ignore[arg-type]
            setattr(config, key, value)
        return config

    def repository(self) -> "ReportRepository":
        from .reports import ReportRepository

        return ReportRepository(
            self.data_root,
            dataset_suffix=self.dataset_suffix,
            files_dirname=self.files_dirname,
        )

    def database(self) -> "Database":
        """Open the annotation database, migrating legacy rows into the first dataset."""
        from .schema import initialize_annotation_db

        datasets = self.repository().list_datasets()
        return initialize_annotation_db(
            self.database_path,
            default_dataset=datasets[0] if datasets else None,
        )
