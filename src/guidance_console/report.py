"""Printable HTML reports of what a view currently shows."""
import logging
import os
import webbrowser
from datetime import datetime

from jinja2 import Environment, FileSystemLoader, select_autoescape

from guidance_console.classify import (
    DIFFICULTY_LABELS, SPEED_LABELS, difficulty_tier, speed_status,
)
from guidance_console.config import DEFAULT_TIME_THRESHOLD, REPORT_DIR
from guidance_console.exam_results import summarize
from guidance_console.filters import is_empty
from guidance_console.question_analysis import difficulty_distribution

logger = logging.getLogger(__name__)

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


class ReportSurfaceError(Exception):
    """The report was written but no browser could be opened to show it."""

    def __init__(self, path: str):
        super().__init__(
            f"Could not open a browser to show the report. It was saved to {path}; "
            f"open that file to view or print it."
        )
        self.path = path


def _render(template: str, title: str, filters: dict | None = None, **context) -> str:
    shown = {k: v for k, v in (filters or {}).items() if not is_empty(v) and v is not False}
    return _env.get_template(template).render(
        title=title,
        generated_at=datetime.now().strftime("%Y-%m-%d %H:%M"),
        filters=shown,
        **context,
    )


def render_question_report(questions: list, stats: dict, filters: dict | None = None,
                           threshold: int = DEFAULT_TIME_THRESHOLD) -> str:
    """Question analysis report over the filtered and sorted questions (all pages)."""
    rows = [
        {"stat": q, "speed": speed_status(q.avg_time_seconds, threshold),
         "tier": difficulty_tier(q.wrong_percentage)}
        for q in questions
    ]
    return _render(
        "question_report.html", "Question Analysis Report", filters,
        questions=rows,
        stats=stats,
        threshold=threshold,
        difficulty=difficulty_distribution(questions),
        difficulty_labels=DIFFICULTY_LABELS,
        speed_labels=SPEED_LABELS,
    )


def render_results_report(results: list, filters: dict | None = None, compact: bool = False) -> str:
    return _render(
        "results_report.html", "Exam Results Report", filters,
        results=results,
        summary=summarize(results),
        compact=compact,
    )


def _category_rows(breakdown) -> list[dict]:
    if isinstance(breakdown, dict):
        rows = []
        for name, value in breakdown.items():
            row = dict(value) if isinstance(value, dict) else {"percentage": value}
            row.setdefault("category", name)
            rows.append(row)
        return rows
    return list(breakdown or [])


def render_result_detail(result, details: dict | None = None) -> str:
    """One examinee's result with per-category scores and answers when available."""
    details = details or {}
    return _render(
        "result_detail.html", f"Exam Result: {result.examinee_name or result.result_id}",
        result=result,
        categories=_category_rows(details.get("category_breakdown")),
        answers=details.get("answers") or [],
        courses=details.get("recommended_courses") or [],
    )


def write_report(html: str, directory: str = REPORT_DIR, name: str = "report") -> str:
    os.makedirs(directory, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    path = os.path.join(directory, f"{name}-{stamp}.html")
    with open(path, "w", encoding="utf-8") as f:
        f.write(html)
    logger.info("Wrote report %s", path)
    return path


def open_report(html: str, directory: str = REPORT_DIR, name: str = "report") -> str:
    """Save the report and show it in the system browser. Returns the saved path.

    Raises:
        ReportSurfaceError: no browser is available; the file is still saved.
    """
    path = write_report(html, directory, name)
    try:
        opened = webbrowser.open("file://" + os.path.abspath(path))
    except webbrowser.Error as e:
        logger.warning("Browser failed to open %s: %s", path, e)
        opened = False
    if not opened:
        raise ReportSurfaceError(path)
    return path
