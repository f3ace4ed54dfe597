"""Administrative cleanup of stale exam attempts and half-finished registrations."""
import logging

from guidance_console.api import ApiClient
from guidance_console.filters import apply_filters, contains_ci
from guidance_console.models import InProgressExam, IncompleteRegistration
from guidance_console.sorting import sort_records

logger = logging.getLogger(__name__)

RESULTS_PATH = "/guidance/exam-results"
REGISTRATION_PATH = "/guidance/registration-management"


def _selection(ids, what: str) -> list[int]:
    ids = list(dict.fromkeys(int(i) for i in (ids or [])))
    if not ids:
        raise ValueError(f"No {what} selected")
    return ids


def _rows(response, *names) -> list:
    if isinstance(response, list):
        return response
    for name in names:
        rows = (response or {}).get(name)
        if rows is not None:
            return rows
    return []


def clear_abandoned(client: ApiClient) -> int:
    """Delete attempts that never started answering. Returns how many went."""
    response = client.post(f"{RESULTS_PATH}/clear-in-progress") or {}
    deleted = int(response.get("deleted_count") or 0)
    logger.info("Cleared %d abandoned exam attempts", deleted)
    return deleted


def check_finished_in_progress(client: ApiClient) -> list[InProgressExam]:
    """Attempts with a finish time whose remarks still say "In Progress"."""
    response = client.get(f"{RESULTS_PATH}/check-in-progress")
    exams = [InProgressExam.from_payload(e) for e in _rows(response, "exams")]
    return sort_records(exams, "result_id", descending=False, tiebreak="result_id")


def fix_remarks(client: ApiClient, result_ids) -> dict:
    """Give the selected attempts their Passed/Failed remark."""
    ids = _selection(result_ids, "exams")
    response = client.post(f"{RESULTS_PATH}/fix-in-progress-remarks", {"exam_ids": ids}) or {}
    logger.info("Fixed remarks on %d exam results", len(ids))
    return response


def list_in_progress(client: ApiClient) -> list[InProgressExam]:
    """Every attempt still marked in progress, newest first."""
    response = client.get(f"{RESULTS_PATH}/check-all-in-progress")
    exams = [InProgressExam.from_payload(e) for e in _rows(response, "exams")]
    return sort_records(exams, "started_at", descending=True, tiebreak="result_id", missing="")


def search_in_progress(exams: list, text) -> list:
    return apply_filters(exams, [contains_ci(("examinee_name", "result_id", "exam_id"), text)])


def delete_selected(client: ApiClient, result_ids) -> int:
    ids = _selection(result_ids, "exams")
    response = client.post(f"{RESULTS_PATH}/delete-selected-in-progress", {"exam_ids": ids}) or {}
    deleted = int(response.get("deleted_count", len(ids)) or 0)
    logger.info("Deleted %d in-progress exam results", deleted)
    return deleted


def clear_exam_progress(client: ApiClient) -> dict:
    """Drop all saved exam progress so examinees restart from the first question."""
    response = client.post("/guidance/exam-progress/clear") or {}
    logger.info("Cleared exam progress records")
    return response


def _hours(hours) -> int:
    try:
        hours = int(hours)
    except (TypeError, ValueError):
        raise ValueError("Hours must be a whole number")
    if hours < 1:
        raise ValueError("Hours must be at least 1")
    return hours


def registration_dry_run(client: ApiClient, hours=24) -> list[IncompleteRegistration]:
    """Accounts older than ``hours`` with no examinee record. Nothing is changed."""
    response = client.get(f"{REGISTRATION_PATH}/dry-run", params={"hours": _hours(hours)})
    rows = _rows(response, "incomplete_registrations", "registrations")
    return [IncompleteRegistration.from_payload(r) for r in rows]


def cleanup_registrations(client: ApiClient, user_ids, hours=24) -> dict:
    """Delete the selected incomplete accounts.

    Returns the server's report, ``deleted_count`` plus per-account ``errors``.
    """
    ids = _selection(user_ids, "users")
    response = client.post(f"{REGISTRATION_PATH}/cleanup", {"hours": _hours(hours), "user_ids": ids}) or {}
    errors = response.get("errors") or []
    if errors:
        logger.warning("%d registrations could not be removed", len(errors))
    logger.info("Removed %s incomplete registrations", response.get("deleted_count", 0))
    return response


def fix_registrations(client: ApiClient, user_ids) -> dict:
    ids = _selection(user_ids, "users")
    response = client.post(f"{REGISTRATION_PATH}/fix", {"user_ids": ids}) or {}
    logger.info("Created placeholder examinee records for %d users", len(ids))
    return response
