"""Tests for the question difficulty analysis view."""
import pytest

from guidance_console import question_analysis as qa
from guidance_console.prefs import get_pref


def stat(qid, wrong, avg, category="Math", question=None):
    return {
        "questionId": qid, "question": question or f"Question {qid}", "category": category,
        "total_attempts": 20, "avg_time_seconds": avg, "wrong_percentage": wrong,
    }


PAYLOAD = {
    "question_stats": [
        stat(1, 50, 45),
        stat(2, 80, 61, "Science"),
        stat(3, 80, 95, "English", "Which word is a verb?"),
        stat(4, 10, 20, "Science"),
    ],
    "available_exams": [{"examId": 7, "exam-ref-no": "EX-7", "status": "active"}],
    "overall_stats": {"total_questions": 4, "total_examinees": 12, "overall_avg_time": 55.24},
    "daily_trends": [{"date": "2025-10-27", "answers": 40}],
}


@pytest.fixture
def browser(fake_client, tmp_db):
    fake_client.responses[("GET", qa.PATH)] = PAYLOAD
    b = qa.open_browser(fake_client, tmp_db)
    b.load()
    return b


def ids(records):
    return [q.question_id for q in records]


def test_parse_payload_builds_facets():
    ws = qa.parse_payload(PAYLOAD)
    assert ws.total == 4
    assert ws.facets["categories"] == ["English", "Math", "Science"]
    assert ws.facets["exams"][0].exam_ref_no == "EX-7"
    assert ws.meta["daily_trends"] == PAYLOAD["daily_trends"]


def test_load_sends_default_threshold(browser, fake_client):
    assert fake_client.calls == [("GET", qa.PATH, {"time_threshold": 60}, None)]


def test_sorted_by_wrong_percentage_then_id(browser):
    assert ids(browser.ordered()) == [2, 3, 1, 4]


def test_speed_filter_uses_current_threshold(browser, fake_client):
    browser.set_filter("status", "slow")
    assert ids(browser.ordered()) == [2]
    browser.set_filter("status", "very_slow")
    assert ids(browser.ordered()) == [3]
    assert browser.set_filter("time_threshold", 30) is True
    assert fake_client.calls[-1][2] == {"time_threshold": 30}
    assert ids(browser.ordered()) == [2, 3]
    browser.set_filter("status", "slow")
    assert ids(browser.ordered()) == [1]


def test_difficulty_filter(browser):
    browser.set_filter("difficulty", "extreme_hard")
    assert ids(browser.ordered()) == [2, 3]
    browser.set_filter("difficulty", "super_easy")
    assert ids(browser.ordered()) == [4]


def test_wrong_percentage_bounds_are_inclusive(browser):
    browser.set_filters(wrong_percentage_min="50", wrong_percentage_max="80")
    assert ids(browser.ordered()) == [2, 3, 1]


def test_search_matches_id_or_text(browser):
    browser.set_filter("search_query", "VERB")
    assert ids(browser.ordered()) == [3]
    browser.set_filter("search_query", "4")
    assert ids(browser.ordered()) == [4]


def test_category_filter(browser):
    browser.set_filter("category", "science")
    assert ids(browser.ordered()) == [2, 4]


def test_filters_persist_across_sessions(browser, fake_client, tmp_db):
    browser.set_filters(category="Science", time_threshold=45)
    browser.set_page_size(30)
    reopened = qa.open_browser(fake_client, tmp_db)
    assert reopened.filters["category"] == "Science"
    assert reopened.filters["time_threshold"] == 45
    assert reopened.window.page_size == 30


def test_reset_restores_defaults(browser, tmp_db):
    browser.set_filters(category="Science", time_threshold=45, status="slow")
    browser.set_page_size(40)
    browser.reset_filters()
    assert browser.filters["time_threshold"] == 60
    assert browser.filters["category"] == ""
    assert browser.window.page_size == 20
    assert get_pref(tmp_db, "question_analysis.category") is None


def test_validate_filter():
    assert qa.validate_filter("time_threshold", "45") == 45
    assert qa.validate_filter("time_threshold", "") == 60
    assert qa.validate_filter("category", " Math ") == "Math"
    assert qa.validate_filter("wrong_percentage_min", "") == ""
    with pytest.raises(ValueError):
        qa.validate_filter("time_threshold", "0")
    with pytest.raises(ValueError):
        qa.validate_filter("time_threshold", "soon")
    with pytest.raises(ValueError):
        qa.validate_filter("status", "glacial")
    with pytest.raises(ValueError):
        qa.validate_filter("difficulty", "impossible")
    with pytest.raises(ValueError):
        qa.validate_filter("wrong_percentage_max", "150")


def test_threshold_of_falls_back_on_bad_values():
    assert qa.threshold_of({"time_threshold": 45}) == 45
    assert qa.threshold_of({"time_threshold": 0}) == 60
    assert qa.threshold_of({"time_threshold": True}) == 60
    assert qa.threshold_of({}) == 60


def test_distributions(browser):
    records = browser.fetcher.records
    assert qa.difficulty_distribution(records) == {
        "extreme_hard": 2, "hard": 0, "moderate": 1, "easy": 0, "super_easy": 1,
    }
    assert qa.speed_distribution(records, 60) == {"normal": 2, "slow": 1, "very_slow": 1}


def test_top_slow_and_high_wrong(browser):
    records = browser.fetcher.records
    assert ids(qa.top_slow_questions(records, limit=2)) == [3, 2]
    assert ids(qa.high_wrong_questions(records)) == [2, 3]


def test_overall_stats_fills_missing_numbers(browser):
    stats = qa.overall_stats(browser.fetcher.working_set)
    assert stats["total_questions"] == 4
    assert stats["total_examinees"] == 12
    assert stats["overall_avg_time"] == 55.2
    assert stats["total_answers"] == 0
