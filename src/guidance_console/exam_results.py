"""Exam results: browsing, pass/fail summaries and archiving."""
import logging
from collections import Counter
from dataclasses import replace
from datetime import date, timedelta

from guidance_console.api import ApiClient
from guidance_console.browser import ResultBrowser
from guidance_console.classify import is_passing
from guidance_console.config import DEFAULT_PAGE_SIZE
from guidance_console.fetcher import ResultFetcher
from guidance_console.filters import contains_ci, date_part, equals_ci, on_date
from guidance_console.models import ExamResult, WorkingSet
from guidance_console.prefs import PreferenceGroup
from guidance_console.sorting import SortSpec

logger = logging.getLogger(__name__)

PATH = "/guidance/exam-results"
PREF_PREFIX = "exam_results"
VIEW_PREF_PREFIX = "exam_results_view"

DEFAULTS = {
    "year": "",
    "include_archived": False,
    "start_date": "",
    "end_date": "",
    "exam_ref_no": "",
    "status": "",
    "date": "",
    "search": "",
    "items_per_page": DEFAULT_PAGE_SIZE,
}
VIEW_DEFAULTS = {"compact_view": False}
SERVER_FIELDS = ("year", "include_archived", "start_date", "end_date")
STATUSES = ["completed", "in_progress", "pending"]
SEARCH_FIELDS = ("examinee_name", "exam_ref_no", "school_year", "semester", "personality_type")
SORT = SortSpec(key="finished_key", descending=True, tiebreak="result_id", missing="")


def _result_rows(data) -> list:
    if isinstance(data, list):
        return data
    rows = data.get("all_results") or data.get("allResults")
    if rows is None:
        rows = data.get("results") or []
        if isinstance(rows, dict):
            rows = rows.get("data") or []
    return rows


def parse_payload(data) -> WorkingSet:
    results = [ExamResult.from_payload(r) for r in _result_rows(data)]
    years = data.get("years") if isinstance(data, dict) else None
    return WorkingSet(
        records=results,
        total=len(results),
        facets={
            **record_facets(results),
            "years": sorted({str(y) for y in (years or [])}, reverse=True),
        },
    )


def build_predicates(state: dict) -> list:
    return [
        equals_ci("exam_ref_no", state.get("exam_ref_no")),
        equals_ci("status", state.get("status")),
        on_date("finished_at", state.get("date")),
        contains_ci(SEARCH_FIELDS, state.get("search")),
    ]


def validate_filter(name: str, value):
    text = "" if value is None else str(value).strip()
    if name == "include_archived":
        return bool(value)
    if not text:
        return ""
    if name == "year":
        if not (len(text) == 4 and text.isdigit()):
            raise ValueError("Year must be four digits, e.g. 2025")
    elif name in ("start_date", "end_date", "date"):
        if date_part(text) != text:
            raise ValueError("Dates must be written as YYYY-MM-DD")
    elif name == "status" and text not in STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(STATUSES)}")
    return text


def open_browser(client: ApiClient, db_path: str) -> ResultBrowser:
    fetcher = ResultFetcher(client, PATH, parse_payload, record_facets)
    prefs = PreferenceGroup(db_path, PREF_PREFIX, DEFAULTS)
    return ResultBrowser(fetcher, prefs, SERVER_FIELDS, build_predicates, SORT)


def view_prefs(db_path: str) -> PreferenceGroup:
    return PreferenceGroup(db_path, VIEW_PREF_PREFIX, VIEW_DEFAULTS)


def exam_facet(records: list) -> list[str]:
    return sorted({r.exam_ref_no for r in records if r.exam_ref_no})


def date_facet(records: list) -> list[tuple[str, int]]:
    """Distinct finish dates, newest first, with how many results finished that day."""
    counts = Counter(d for d in (date_part(r.finished_at) for r in records) if d)
    return sorted(counts.items(), key=lambda item: item[0], reverse=True)


def record_facets(records: list) -> dict:
    """Facets derived from the results themselves, rebuilt after local changes."""
    return {"exams": exam_facet(records), "dates": date_facet(records)}


def summarize(records: list) -> dict:
    total = len(records)
    passed = sum(1 for r in records if is_passing(r.score))
    average = round(sum(r.score for r in records) / total) if total else 0
    return {
        "total": total,
        "passed": passed,
        "failed": max(total - passed, 0),
        "average_score": average,
        "pass_rate": round(passed / total * 100) if total else 0,
    }


def quick_range(kind: str, today: date | None = None) -> tuple[str, str]:
    """Start and end dates for the ``today``, ``last7`` and ``this_month`` shortcuts."""
    today = today or date.today()
    if kind == "today":
        start, end = today, today
    elif kind == "last7":
        start, end = today - timedelta(days=6), today
    elif kind == "this_month":
        start = today.replace(day=1)
        next_month = (start + timedelta(days=32)).replace(day=1)
        end = next_month - timedelta(days=1)
    else:
        raise ValueError(f"Unknown date range: {kind}")
    return start.isoformat(), end.isoformat()


def apply_quick_range(browser: ResultBrowser, kind: str, today: date | None = None) -> bool:
    start, end = quick_range(kind, today)
    return browser.set_filters(start_date=start, end_date=end)


def fetch_result_details(client: ApiClient, result_id: int) -> dict:
    return client.get(f"/exam-results/{result_id}/details")


def _mark_archived(browser: ResultBrowser, result_id: int, archived: bool) -> None:
    records = browser.fetcher.records
    if not any(r.result_id == result_id for r in records):
        if not archived and not browser.state.get("include_archived"):
            # restored result was hidden from this view; it now belongs in it
            browser.refresh()
        return
    if archived and not browser.state.get("include_archived"):
        browser.replace_records([r for r in records if r.result_id != result_id])
    else:
        browser.replace_records([
            replace(r, is_archived=archived) if r.result_id == result_id else r for r in records
        ])


def archive_result(client: ApiClient, browser: ResultBrowser, result_id: int) -> None:
    """Archive one result once the server confirms.

    Without ``include_archived`` the result leaves the working set; with it the
    result stays and is marked archived.
    """
    client.post("/guidance/exam-results/archive", {"id": result_id})
    logger.info("Archived exam result %s", result_id)
    _mark_archived(browser, result_id, True)


def unarchive_result(client: ApiClient, browser: ResultBrowser, result_id: int) -> None:
    client.post(f"/guidance/exam-results/{result_id}/unarchive")
    logger.info("Unarchived exam result %s", result_id)
    _mark_archived(browser, result_id, False)


def archive_year(client: ApiClient, browser: ResultBrowser, year) -> dict:
    year = validate_filter("year", year)
    if not year:
        raise ValueError("Choose a year to archive")
    response = client.post("/guidance/exam-results/archive-year", {"year": int(year)})
    browser.refresh()
    return response or {}


def unarchive_year(client: ApiClient, browser: ResultBrowser, year) -> dict:
    year = validate_filter("year", year)
    if not year:
        raise ValueError("Choose a year to restore")
    response = client.post("/guidance/exam-results/unarchive-year", {"year": int(year)})
    browser.refresh()
    return response or {}


def archive_all(client: ApiClient, browser: ResultBrowser) -> dict:
    response = client.post("/guidance/exam-results/archive-all")
    browser.refresh()
    return response or {}
