"""Read-only access to similarity reports and student source files on disk.

Layout::

    <data_root>/<dataset>-jplag/            one directory per dataset
        <case>.json                         similarity reports, any depth
        files/<relative source path>        student submissions
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import (
    CaseNotFoundError,
    DatasetNotFoundError,
    NotFoundError,
    ReportFormatError,
    SourceNotFoundError,
)
from .shared.models import CaseReport, CaseSummary
from .utils import ensure_case_filename, safe_relative_path

LOGGER = logging.getLogger(__name__)

REPORT_GLOB = "*.json"


class ReportRepository:
    def __init__(
        self,
        data_root: Path | str,
        *,
        dataset_suffix: str = "-jplag",
        files_dirname: str = "files",
    ) -> None:
        self.data_root = Path(data_root)
        self.dataset_suffix = dataset_suffix
        self.files_dirname = files_dirname

    # ------------------------------------------------------------------ datasets
    def list_datasets(self) -> List[str]:
        if not self.data_root.is_dir():
            LOGGER.warning("Data root %s does not exist", self.data_root)
            return []
        return sorted(
            entry.name
            for entry in self.data_root.iterdir()
            if entry.is_dir() and entry.name.endswith(self.dataset_suffix)
        )

    def resolve_dataset(self, name: str) -> str:
        """Map a user supplied dataset name onto an existing dataset folder.

        Tries the exact name, then the name with the dataset suffix, then the
        first dataset that starts with the name.
        """
        datasets = self.list_datasets()
        if name in datasets:
            return name
        if not name.endswith(self.dataset_suffix) and name + self.dataset_suffix in datasets:
            return name + self.dataset_suffix
        if name:
            for dataset in datasets:
                if dataset.startswith(name):
                    return dataset
        raise DatasetNotFoundError(name)

    def dataset_dir(self, dataset: str) -> Path:
        resolved = self.resolve_dataset(dataset)
        path = self.data_root / resolved
        if not path.is_dir():
            raise DatasetNotFoundError(dataset)
        return path

    # --------------------------------------------------------------------- cases
    def _iter_report_paths(self, directory: Path) -> Iterator[Path]:
        for entry in sorted(directory.iterdir()):
            if entry.is_dir():
                if entry.name == self.files_dirname:
                    continue
                yield from self._iter_report_paths(entry)
            elif entry.is_file() and entry.match(REPORT_GLOB):
                yield entry

    def _read_json(self, path: Path) -> object:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ReportFormatError(f"Failed to parse {path}: {exc}") from exc

    def list_cases(self, dataset: str) -> List[CaseSummary]:
        directory = self.dataset_dir(dataset)
        cases: List[CaseSummary] = []
        for path in self._iter_report_paths(directory):
            try:
                data = self._read_json(path)
            except ReportFormatError as exc:
                LOGGER.warning("%s", exc)
                continue
            similarities = data.get("similarities") if isinstance(data, dict) else None
            if not isinstance(similarities, dict):
                similarities = {}
            filename = path.relative_to(directory).as_posix()
            cases.append(CaseSummary(filename=filename, similarities=similarities))
        LOGGER.info("Dataset %s: %d case reports", directory.name, len(cases))
        return cases

    def load_case(self, dataset: str, filename: str) -> CaseReport:
        ensure_case_filename(filename)
        directory = self.dataset_dir(dataset)
        path = directory / filename
        if not path.is_file():
            raise CaseNotFoundError(directory.name, filename)
        data = self._read_json(path)
        return CaseReport.from_json(directory.name, filename, data)

    # ------------------------------------------------------------------- sources
    def read_source(self, dataset: str, relative_path: str) -> str:
        relative = safe_relative_path(relative_path)
        directory = self.dataset_dir(dataset)
        path = directory / self.files_dirname / Path(*relative.parts)
        if not path.is_file():
            raise SourceNotFoundError(directory.name, relative.as_posix())
        return path.read_text(encoding="utf-8", errors="replace")

    def source_files_for(self, case: CaseReport) -> Dict[str, str]:
        """Text of every file referenced by ``case``; unreadable files become error text."""
        contents: Dict[str, str] = {}
        for path in case.source_paths():
            try:
                contents[path] = self.read_source(case.dataset, path)
            except NotFoundError:
                LOGGER.warning("Source file %s missing for case %s", path, case.filename)
                contents[path] = "Error: Not Found"
            except OSError as exc:
                LOGGER.warning("Could not read source file %s: %s", path, exc)
                contents[path] = "Error: Read error"
        return contents

    # -------------------------------------------------------------------- offline
    def iter_similarity_reports(self) -> Iterator[Tuple[str, str, float]]:
        """Yield ``(dataset, filename, MAX similarity)`` for every report under the data root.

        Reports without a numeric ``MAX`` similarity are ignored; unparsable
        reports are skipped with a warning.
        """
        for dataset in self.list_datasets():
            directory = self.data_root / dataset
            for path in self._iter_report_paths(directory):
                try:
                    data = self._read_json(path)
                except ReportFormatError as exc:
                    LOGGER.error("%s", exc)
                    continue
                similarity = _max_similarity(data)
                if similarity is None:
                    continue
                dataset_name = path.parent.relative_to(self.data_root).as_posix()
                yield dataset_name, path.name, similarity


def _max_similarity(data: object) -> Optional[float]:
    if not isinstance(data, dict):
        return None
    similarities = data.get("similarities")
    if not isinstance(similarities, dict):
        return None
    value = similarities.get("MAX")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
