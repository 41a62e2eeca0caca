import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plagannotate.config import AppConfig
from plagannotate.errors import UnsafePathError
from plagannotate.utils import ensure_case_filename, safe_relative_path


def test_environment_and_overrides(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("PLAGANNOTATE_DATA_ROOT", str(tmp_path / "reports"))
    monkeypatch.setenv("PLAGANNOTATE_SAMPLE_SIZE", "not-a-number")
    config = AppConfig.from_env(database_path=str(tmp_path / "a.db"), log_level=None)
    assert config.data_root == tmp_path / "reports"
    assert config.database_path == tmp_path / "a.db"
    assert config.sample_size == 10
    assert config.log_level == "INFO"


def test_unknown_override_is_rejected():
    with pytest.raises(TypeError):
        AppConfig.from_env(colour="red")


def test_database_migrates_into_first_dataset(data_root: Path, tmp_path: Path):
    config = AppConfig.from_env(data_root=data_root, database_path=tmp_path / "annotations.db")
    assert config.repository().list_datasets()[0] == "hw1-jplag"
    assert config.database().path == tmp_path / "annotations.db"


def test_path_helpers():
    assert safe_relative_path("a\\b/c.java").as_posix() == "a/b/c.java"
    assert ensure_case_filename("case.json") == "case.json"
    for bad in ("../x", "/abs", ""):
        with pytest.raises(UnsafePathError):
            safe_relative_path(bad)
