import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plagannotate.drafts import DEFAULT_LEVEL, AnnotationDraft
from plagannotate.shared.models import CaseReport

from conftest import match_json


def _matches():
    data = {
        "matches": [
            match_json("a/A.java", "b/A.java", (1, 2), (1, 2)),
            match_json("a/A.java", "b/A.java", (4, 6), (4, 6)),
        ]
    }
    return CaseReport.from_json("hw1-jplag", "case.json", data).matches


def test_update_returns_new_draft():
    draft = AnnotationDraft()
    edited = draft.update(1, level=5, comment="identical loop")
    assert draft.get(1) is None
    assert edited.get(1).level == 5
    assert edited.get(1).comment == "identical loop"
    assert edited.assessed_indices == frozenset({1})


def test_comment_only_edit_keeps_level_unset():
    draft = AnnotationDraft().update(0, comment="look again")
    assert draft.get(0).level is None
    assert draft.level_for(0) == DEFAULT_LEVEL
    assert draft.assessed_indices == frozenset()


def test_to_items_defaults_untouched_matches():
    items = AnnotationDraft().update(1, level=4).to_items(_matches())
    assert [(item.match_index, item.level) for item in items] == [(0, DEFAULT_LEVEL), (1, 4)]
    assert items[1].first_file == "a/A.java"
    assert items[1].start1_line == 4
    assert items[1].end1_col == 4


def test_to_items_can_leave_untouched_matches_out():
    items = AnnotationDraft().update(1, level=4).update(0, comment="note only").to_items(
        _matches(), include_untouched=False
    )
    assert [(item.match_index, item.level) for item in items] == [(1, 4)]
