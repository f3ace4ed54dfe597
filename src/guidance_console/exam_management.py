"""Exam management: listing exams, building new ones, switching them on and off."""
import logging
from collections import Counter
from dataclasses import replace

from guidance_console.api import ApiClient
from guidance_console.browser import ResultBrowser
from guidance_console.config import DEFAULT_PAGE_SIZE
from guidance_console.fetcher import ResultFetcher
from guidance_console.filters import contains_ci, equals_ci
from guidance_console.models import Exam, WorkingSet
from guidance_console.pager import window_from_query
from guidance_console.prefs import PreferenceGroup
from guidance_console.sorting import SortSpec

logger = logging.getLogger(__name__)

PATH = "/guidance/exam-management"
CREATE_PATH = "/guidance/exams"
PREF_PREFIX = "exam_management"

DEFAULTS = {"search": "", "status": "", "items_per_page": DEFAULT_PAGE_SIZE}
STATUSES = ["active", "inactive"]
EXAM_TYPES = ["manual", "random"]
SORT = SortSpec(key="created_at", descending=True, tiebreak="exam_id", missing="")


def _counts(data: dict, list_key: str, grouped_key: str, group_field: str) -> dict[str, int]:
    grouped = data.get(grouped_key)
    if isinstance(grouped, dict):
        return {str(k): len(v) if isinstance(v, list) else int(v or 0) for k, v in grouped.items()}
    items = data.get(list_key) or []
    return dict(Counter(str(q.get(group_field)) for q in items if q.get(group_field)))


def parse_payload(data) -> WorkingSet:
    if isinstance(data, list):
        data = {"exams": data}
    exams = [Exam.from_payload(e) for e in (data.get("exams") or [])]
    return WorkingSet(
        records=exams,
        total=len(exams),
        facets={
            "categories": _counts(data, "questions", "questions_by_category", "category"),
            "dichotomies": _counts(data, "personality_questions", "personality_by_dichotomy", "dichotomy"),
        },
    )


def build_predicates(state: dict) -> list:
    return [
        contains_ci(("exam_ref_no",), state.get("search")),
        equals_ci("status", state.get("status")),
    ]


def open_browser(client: ApiClient, db_path: str, query: str = "") -> ResultBrowser:
    """Exam list browser. ``per_page``/``page`` in ``query`` win over stored settings."""
    fetcher = ResultFetcher(client, PATH, parse_payload)
    prefs = PreferenceGroup(db_path, PREF_PREFIX, DEFAULTS)
    browser = ResultBrowser(fetcher, prefs, (), build_predicates, SORT)
    if query:
        window = window_from_query(query, default_size=browser.window.page_size)
        browser.window.page_size = window.page_size
        browser.window.page = window.page
    return browser


def active_count(records: list) -> int:
    return sum(1 for e in records if e.status == "active")


def _check_counts(counts: dict, available: dict | None, label: str) -> dict[str, int]:
    if not counts:
        raise ValueError(f"Choose at least one {label} and how many questions to draw from it")
    cleaned = {}
    for name, count in counts.items():
        try:
            count = int(count)
        except (TypeError, ValueError):
            raise ValueError(f"Question count for {label} '{name}' must be a whole number")
        if count < 1:
            raise ValueError(f"Question count for {label} '{name}' must be at least 1")
        if available is not None and count > available.get(name, 0):
            raise ValueError(
                f"Not enough questions available for {label} '{name}'. "
                f"Requested: {count}, Available: {available.get(name, 0)}"
            )
        cleaned[name] = count
    return cleaned


def _check_ids(ids, label: str) -> list[int]:
    ids = list(dict.fromkeys(ids or []))
    if not ids:
        raise ValueError(f"Select at least one {label}")
    return ids


def build_exam_payload(
    time_limit,
    exam_type: str = "manual",
    question_ids=None,
    category_counts: dict | None = None,
    include_personality_test: bool = False,
    personality_exam_type: str = "manual",
    personality_question_ids=None,
    personality_category_counts: dict | None = None,
    available: dict | None = None,
    personality_available: dict | None = None,
) -> dict:
    """Assemble the create-exam request body.

    Manual exams send the chosen question ids; random exams send how many questions
    to draw per category. ``available`` (category -> question count) is checked
    when given so an impossible draw is refused before anything is sent.

    Raises:
        ValueError: with a message suitable for showing to the user.
    """
    try:
        time_limit = int(time_limit)
    except (TypeError, ValueError):
        raise ValueError("Time limit must be a whole number of minutes")
    if time_limit < 1:
        raise ValueError("Time limit must be at least 1 minute")
    if exam_type not in EXAM_TYPES:
        raise ValueError(f"Exam type must be one of: {', '.join(EXAM_TYPES)}")

    payload = {
        "time_limit": time_limit,
        "exam_type": exam_type,
        "include_personality_test": bool(include_personality_test),
    }
    if exam_type == "manual":
        payload["question_ids"] = _check_ids(question_ids, "question")
    else:
        payload["category_counts"] = _check_counts(category_counts, available, "category")

    if include_personality_test:
        if personality_exam_type not in EXAM_TYPES:
            raise ValueError(f"Personality exam type must be one of: {', '.join(EXAM_TYPES)}")
        payload["personality_exam_type"] = personality_exam_type
        if personality_exam_type == "manual":
            payload["personality_question_ids"] = _check_ids(personality_question_ids, "personality question")
        else:
            payload["personality_category_counts"] = _check_counts(
                personality_category_counts, personality_available, "dichotomy",
            )
    return payload


def create_exam(client: ApiClient, browser: ResultBrowser, payload: dict):
    response = client.post(CREATE_PATH, payload)
    logger.info("Created %s exam (%s)", payload.get("exam_type"), payload.get("time_limit"))
    browser.refresh()
    return response


def toggle_exam_status(client: ApiClient, browser: ResultBrowser, exam_id: int) -> Exam:
    """Flip an exam between active and inactive.

    The local record changes only after the server accepts the request.
    """
    records = browser.fetcher.records
    exam = next((e for e in records if e.exam_id == exam_id), None)
    if exam is None:
        raise ValueError(f"No exam with id {exam_id} in the current list")
    response = client.put(f"{CREATE_PATH}/{exam_id}/toggle-status")
    new_status = None
    if isinstance(response, dict):
        new_status = response.get("status")
    if new_status not in STATUSES:
        new_status = "inactive" if exam.status == "active" else "active"
    updated = replace(exam, status=new_status)
    browser.replace_records([updated if e.exam_id == exam_id else e for e in records])
    logger.info("Exam %s is now %s", exam.exam_ref_no or exam_id, new_status)
    return updated
