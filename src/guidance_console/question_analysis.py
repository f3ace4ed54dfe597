"""Question difficulty analysis: which questions examinees get wrong or linger on."""
from collections import Counter

from guidance_console.api import ApiClient
from guidance_console.browser import ResultBrowser
from guidance_console.classify import (
    SPEED_STATUSES, DIFFICULTY_TIERS, speed_status, difficulty_tier,
)
from guidance_console.config import DEFAULT_TIME_THRESHOLD, DEFAULT_PAGE_SIZE
from guidance_console.fetcher import ResultFetcher
from guidance_console.filters import (
    contains_ci, derived_equals, equals_ci, is_empty, numeric_range,
)
from guidance_console.models import AvailableExam, QuestionStat, WorkingSet
from guidance_console.prefs import PreferenceGroup
from guidance_console.sorting import SortSpec, sort_records

PATH = "/guidance/question-analysis"
PREF_PREFIX = "question_analysis"

DEFAULTS = {
    # sent to the server
    "exam_id": "",
    "date_from": "",
    "date_to": "",
    "time_threshold": DEFAULT_TIME_THRESHOLD,
    # applied locally
    "category": "",
    "wrong_percentage_min": "",
    "wrong_percentage_max": "",
    "status": "",
    "search_query": "",
    "difficulty": "",
    "items_per_page": DEFAULT_PAGE_SIZE,
}
SERVER_FIELDS = ("exam_id", "date_from", "date_to", "time_threshold")
SORT = SortSpec(key="wrong_percentage", descending=True, tiebreak="question_id")

HIGH_WRONG_CUTOFF = 50


def parse_payload(data: dict) -> WorkingSet:
    stats = [QuestionStat.from_payload(q) for q in (data.get("question_stats") or [])]
    exams = [AvailableExam.from_payload(e) for e in (data.get("available_exams") or [])]
    return WorkingSet(
        records=stats,
        total=len(stats),
        facets={"exams": exams, "categories": category_facet(stats)},
        meta={
            "overall_stats": data.get("overall_stats") or {},
            "daily_trends": data.get("daily_trends") or [],
            "filters": data.get("filters") or {},
        },
    )


def threshold_of(state: dict) -> int:
    value = state.get("time_threshold")
    if isinstance(value, int) and not isinstance(value, bool) and value >= 1:
        return value
    return DEFAULT_TIME_THRESHOLD


def build_predicates(state: dict) -> list:
    threshold = threshold_of(state)
    return [
        equals_ci("category", state.get("category")),
        numeric_range("wrong_percentage", state.get("wrong_percentage_min"), state.get("wrong_percentage_max")),
        derived_equals(lambda q: speed_status(q.avg_time_seconds, threshold), state.get("status")),
        contains_ci(("question_id", "question"), state.get("search_query")),
        derived_equals(lambda q: difficulty_tier(q.wrong_percentage), state.get("difficulty")),
    ]


def validate_filter(name: str, value):
    """Check a user-entered filter value, returning it in its stored form."""
    if is_empty(value):
        return DEFAULTS[name] if name == "time_threshold" else ""
    if name == "time_threshold":
        try:
            threshold = int(value)
        except (TypeError, ValueError):
            raise ValueError("Time threshold must be a whole number of seconds")
        if threshold < 1:
            raise ValueError("Time threshold must be at least 1 second")
        return threshold
    if name == "status" and value not in SPEED_STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(SPEED_STATUSES)}")
    if name == "difficulty" and value not in DIFFICULTY_TIERS:
        raise ValueError(f"Difficulty must be one of: {', '.join(DIFFICULTY_TIERS)}")
    if name in ("wrong_percentage_min", "wrong_percentage_max"):
        try:
            pct = float(value)
        except (TypeError, ValueError):
            raise ValueError("Wrong percentage bounds must be numbers")
        if not 0 <= pct <= 100:
            raise ValueError("Wrong percentage bounds must be between 0 and 100")
        return str(value).strip()
    return str(value).strip()


def open_browser(client: ApiClient, db_path: str) -> ResultBrowser:
    fetcher = ResultFetcher(client, PATH, parse_payload)
    prefs = PreferenceGroup(db_path, PREF_PREFIX, DEFAULTS)
    return ResultBrowser(fetcher, prefs, SERVER_FIELDS, build_predicates, SORT)


def category_facet(records: list) -> list[str]:
    return sorted({q.category for q in records if q.category})


def difficulty_distribution(records: list) -> dict[str, int]:
    counts = Counter(difficulty_tier(q.wrong_percentage) for q in records)
    return {tier: counts.get(tier, 0) for tier in DIFFICULTY_TIERS}


def speed_distribution(records: list, threshold: int = DEFAULT_TIME_THRESHOLD) -> dict[str, int]:
    counts = Counter(speed_status(q.avg_time_seconds, threshold) for q in records)
    return {status: counts.get(status, 0) for status in SPEED_STATUSES}


def top_slow_questions(records: list, limit: int = 10) -> list:
    return sort_records(records, "avg_time_seconds", descending=True, tiebreak="question_id")[:limit]


def high_wrong_questions(records: list, cutoff: float = HIGH_WRONG_CUTOFF) -> list:
    """Questions more than ``cutoff`` percent of examinees answered wrong, worst first."""
    return sort_records(
        [q for q in records if q.wrong_percentage > cutoff],
        SORT.key, SORT.descending, SORT.tiebreak,
    )


def overall_stats(working_set: WorkingSet) -> dict:
    stats = working_set.meta.get("overall_stats") or {}
    return {
        "total_answers": int(stats.get("total_answers") or 0),
        "total_questions": int(stats.get("total_questions") or 0),
        "total_examinees": int(stats.get("total_examinees") or 0),
        "overall_avg_time": round(float(stats.get("overall_avg_time") or 0), 1),
        "total_slow_answers": int(stats.get("total_slow_answers") or 0),
        "overall_slow_percentage": float(stats.get("overall_slow_percentage") or 0),
    }
