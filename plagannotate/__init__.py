"""Annotation service for reviewing source code plagiarism reports.

Reviewers judge the matches of a similarity report and the case as a whole on
a 1 to 5 scale.  :class:`AssessmentStore` persists those judgments,
:func:`anonymize` hides student usernames and :func:`select_cases` picks a
review subset spread over the similarity range.
"""

__version__ = "0.1.0"

from .anonymize import UsernameTable, anonymize, anonymize_all, parse_anonymized_filename
from .config import AppConfig
from .reports import ReportRepository
from .schema import initialize_annotation_db
from .shared.highlights import group_matches
from .shared.sampling import select_cases
from .store import AssessmentItem, AssessmentStore
from .users import IdentityProvider

__all__ = [
    "__version__",
    "AppConfig",
    "AssessmentItem",
    "AssessmentStore",
    "IdentityProvider",
    "ReportRepository",
    "UsernameTable",
    "anonymize",
    "anonymize_all",
    "group_matches",
    "initialize_annotation_db",
    "parse_anonymized_filename",
    "select_cases",
]
