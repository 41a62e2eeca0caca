"""Exception hierarchy shared by the annotation services."""
from __future__ import annotations

from typing import Any, Mapping, Optional


class PlagAnnotateError(Exception):
    """Base class for errors raised by plagannotate."""


class NotFoundError(PlagAnnotateError, LookupError):
    """A referenced user, dataset, case or file does not exist."""


class UserNotFoundError(NotFoundError):
    def __init__(self, username: str) -> None:
        super().__init__(f"User {username!r} not found")
        self.username = username


class DatasetNotFoundError(NotFoundError):
    def __init__(self, dataset: str) -> None:
        super().__init__(f"Unknown dataset {dataset!r}")
        self.dataset = dataset


class CaseNotFoundError(NotFoundError):
    def __init__(self, dataset: str, filename: str) -> None:
        super().__init__(f"Case {filename!r} not found in dataset {dataset!r}")
        self.dataset = dataset
        self.filename = filename


class SourceNotFoundError(NotFoundError):
    def __init__(self, dataset: str, path: str) -> None:
        super().__init__(f"Source file {path!r} not found in dataset {dataset!r}")
        self.dataset = dataset
        self.path = path


class ValidationError(PlagAnnotateError, ValueError):
    """Caller supplied a payload that cannot be stored."""


class UnsafePathError(ValidationError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Invalid path {path!r}")
        self.path = path


class AssessmentValidationError(ValidationError):
    """Raised for the first invalid item of an assessment batch.

    ``item_index`` is the position of the offending item inside the submitted
    batch, which is not necessarily its match index.
    """

    def __init__(self, item_index: int, reason: str, item: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(f"Invalid assessment item at index {item_index}: {reason}")
        self.item_index = item_index
        self.reason = reason
        self.item = dict(item) if item is not None else None


class UserExistsError(PlagAnnotateError):
    def __init__(self, username: str) -> None:
        super().__init__(f"Username {username!r} is already taken")
        self.username = username


class ReportFormatError(PlagAnnotateError):
    """A similarity report could not be parsed."""


class StoreError(PlagAnnotateError):
    """Persistence failed; the underlying error is logged, not exposed."""
