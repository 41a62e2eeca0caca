import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plagannotate.anonymize import (
    UsernameTable,
    anonymize,
    anonymize_all,
    parse_anonymized_filename,
    split_usernames,
)


def test_first_encounter_assigns_sequential_ids():
    name, table = anonymize("assignment-1-alice-assignment-1-bob.json")
    assert name == "assignment-1-user001-user002"
    assert table.mapping == {"alice": "user001", "bob": "user002"}
    assert table.next_id == 3


def test_known_usernames_are_reused_across_calls():
    _, table = anonymize("assignment-1-alice-assignment-1-bob.json")
    name, table = anonymize("assignment-1-bob-assignment-1-carol.json", table)
    assert name == "assignment-1-user002-user003"
    assert len(table) == 3


def test_only_first_assignment_number_is_kept():
    name, _ = anonymize("assignment-2-alice-assignment-7-bob.json")
    assert name == "assignment-2-user001-user002"


def test_hyphenated_usernames_stay_whole():
    assert split_usernames("assignment-3-mary-ann-assignment-3-jo-el.json") == ("3", "mary-ann", "3", "jo-el")


def test_malformed_filename_is_returned_unchanged():
    table = UsernameTable({"alice": "user001"}, next_id=2)
    name, updated = anonymize("report.json", table)
    assert name == "report.json"
    assert updated is table


def test_input_table_is_not_mutated():
    table = UsernameTable()
    anonymize("assignment-1-alice-assignment-1-bob.json", table)
    assert len(table) == 0
    assert table.next_id == 1


def test_anonymize_all_is_deterministic():
    filenames = [
        "assignment-1-carol-assignment-1-alice.json",
        "assignment-1-alice-assignment-1-bob.json",
    ]
    first, _ = anonymize_all(filenames)
    second, _ = anonymize_all(filenames)
    assert first == second
    assert first[filenames[1]] == "assignment-1-user002-user003"


def test_table_round_trips_through_dict():
    _, table = anonymize("assignment-1-alice-assignment-1-bob.json")
    restored = UsernameTable.from_dict(table.to_dict())
    assert restored == table


def test_parse_anonymized_filename():
    assert parse_anonymized_filename("assignment-1-user001-user002") == ("user001", "user002")
    assert parse_anonymized_filename("short-name") == ("?", "?")
    assert parse_anonymized_filename(None) == ("?", "?")
