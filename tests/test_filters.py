"""Tests for the client-side predicate stack."""
from datetime import date, datetime
from itertools import permutations

from guidance_console.filters import (
    apply_filters, contains_ci, date_between, date_part, derived_equals,
    equals_ci, is_empty, numeric_range, on_date, one_of,
)


def make_records():
    return [
        {"id": 1, "name": "Ana Cruz", "category": "Math", "wrong": 20.0, "finished_at": "2025-10-27 17:07:01"},
        {"id": 2, "name": "Ben Reyes", "category": "science", "wrong": 50.0, "finished_at": "2025-10-27T08:00:00.000000Z"},
        {"id": 3, "name": "Cara Lim", "category": "MATH", "wrong": 80.0, "finished_at": "2025-10-28 09:15:00"},
        {"id": 4, "name": "Dan Abad", "category": "English", "wrong": None, "finished_at": None},
    ]


def ids(records):
    return [r["id"] for r in records]


def test_is_empty():
    assert is_empty(None)
    assert is_empty("")
    assert is_empty("   ")
    assert is_empty([])
    assert not is_empty(0)
    assert not is_empty(False)
    assert not is_empty("x")


def test_empty_values_build_inactive_predicates():
    assert equals_ci("category", "") is None
    assert contains_ci(("name",), "  ") is None
    assert numeric_range("wrong", "", None) is None
    assert on_date("finished_at", "") is None
    assert date_between("finished_at") is None
    assert one_of("category", []) is None
    assert derived_equals(lambda r: "x", None) is None


def test_inactive_filters_keep_everything():
    records = make_records()
    assert apply_filters(records, [None, equals_ci("category", "")]) == records


def test_equals_is_case_insensitive():
    assert ids(apply_filters(make_records(), [equals_ci("category", "math")])) == [1, 3]


def test_contains_searches_several_fields():
    records = make_records()
    assert ids(apply_filters(records, [contains_ci(("name", "category"), "SCI")])) == [2]
    assert ids(apply_filters(records, [contains_ci(("name", "id"), "3")])) == [3]


def test_numeric_range_is_inclusive():
    records = make_records()
    assert ids(apply_filters(records, [numeric_range("wrong", 20, 50)])) == [1, 2]
    assert ids(apply_filters(records, [numeric_range("wrong", "50", "")])) == [2, 3]


def test_numeric_range_treats_missing_value_as_zero():
    records = make_records()
    assert ids(apply_filters(records, [numeric_range("wrong", None, 10)])) == [4]


def test_date_part_accepts_both_timestamp_forms():
    assert date_part("2025-10-27 17:07:01") == "2025-10-27"
    assert date_part("2025-10-27T17:07:01.000000Z") == "2025-10-27"
    assert date_part(date(2025, 1, 2)) == "2025-01-02"
    assert date_part(datetime(2025, 1, 2, 3, 4)) == "2025-01-02"
    assert date_part("garbage") is None
    assert date_part(None) is None


def test_on_date_matches_either_format():
    records = make_records()
    assert ids(apply_filters(records, [on_date("finished_at", "2025-10-27")])) == [1, 2]


def test_date_between_is_inclusive():
    records = make_records()
    assert ids(apply_filters(records, [date_between("finished_at", "2025-10-28", "2025-10-28")])) == [3]
    assert ids(apply_filters(records, [date_between("finished_at", None, "2025-10-27")])) == [1, 2]


def test_one_of():
    assert ids(apply_filters(make_records(), [one_of("category", ["english", "Science"])])) == [2, 4]


def test_derived_predicate_reads_current_threshold():
    records = make_records()
    threshold = {"value": 30}
    pred = derived_equals(lambda r: "hard" if (r["wrong"] or 0) > threshold["value"] else "ok", "hard")
    assert ids(apply_filters(records, [pred])) == [2, 3]
    threshold["value"] = 60
    assert ids(apply_filters(records, [pred])) == [3]


def test_predicate_order_does_not_matter():
    records = make_records()
    preds = [
        equals_ci("category", "math"),
        numeric_range("wrong", 10, 90),
        contains_ci(("name",), "a"),
    ]
    expected = apply_filters(records, preds)
    for order in permutations(preds):
        assert apply_filters(records, list(order)) == expected


def test_filtering_does_not_mutate_input():
    records = make_records()
    snapshot = [dict(r) for r in records]
    result = apply_filters(records, [equals_ci("category", "math")])
    result.append({"id": 99})
    assert records == snapshot


def test_removing_matching_record_drops_count_by_one():
    records = make_records()
    preds = [equals_ci("category", "math")]
    before = apply_filters(records, preds)
    after = apply_filters([r for r in records if r["id"] != before[0]["id"]], preds)
    assert len(after) == len(before) - 1


def test_clearing_search_restores_full_set():
    records = make_records()
    assert ids(apply_filters(records, [contains_ci(("name",), "abc")])) == []
    assert apply_filters(records, [contains_ci(("name",), "")]) == records


def test_predicates_read_attributes():
    class Rec:
        def __init__(self, category):
            self.category = category

    records = [Rec("Math"), Rec("Art")]
    assert apply_filters(records, [equals_ci("category", "art")]) == [records[1]]
