"""Composable client-side record predicates.

Each builder returns a predicate (``record -> bool``) or ``None`` when its filter
value is empty. ``None`` means the filter is inactive: an unset filter never
excludes anything. Predicates read attributes (or dict keys) and never modify the
record they are given.
"""
from datetime import date, datetime
from typing import Callable, Iterable, Optional, Sequence

Predicate = Callable[[object], bool]


def is_empty(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def field_value(record, field: str):
    if isinstance(record, dict):
        return record.get(field)
    return getattr(record, field, None)


def _to_float(value) -> Optional[float]:
    if is_empty(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def date_part(value) -> Optional[str]:
    """Calendar date (``YYYY-MM-DD``) of a timestamp string, date or datetime.

    Accepts ``2025-10-27 17:07:01`` and ``2025-10-27T17:07:01.000000Z`` forms.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    if not text:
        return None
    head = text.split("T", 1)[0] if "T" in text else text.split(" ", 1)[0]
    try:
        return date.fromisoformat(head).isoformat()
    except ValueError:
        return None


def equals_ci(field: str, value) -> Optional[Predicate]:
    """Categorical match, case-insensitive."""
    if is_empty(value):
        return None
    wanted = str(value).strip().lower()

    def predicate(record) -> bool:
        actual = field_value(record, field)
        return actual is not None and str(actual).strip().lower() == wanted

    return predicate


def contains_ci(fields: Sequence[str], text) -> Optional[Predicate]:
    """Free-text search: passes when any of ``fields`` contains ``text``."""
    if is_empty(text):
        return None
    needle = str(text).strip().lower()

    def predicate(record) -> bool:
        for field in fields:
            actual = field_value(record, field)
            if actual is not None and needle in str(actual).lower():
                return True
        return False

    return predicate


def numeric_range(field: str, minimum=None, maximum=None) -> Optional[Predicate]:
    """Inclusive numeric bounds. A missing bound leaves that side open.

    A record with no value (or a non-numeric one) counts as 0, so it passes any
    range whose minimum is 0 or below.
    """
    low = _to_float(minimum)
    high = _to_float(maximum)
    if low is None and high is None:
        return None

    def predicate(record) -> bool:
        actual = _to_float(field_value(record, field))
        if actual is None:
            actual = 0.0
        if low is not None and actual < low:
            return False
        if high is not None and actual > high:
            return False
        return True

    return predicate


def on_date(field: str, day) -> Optional[Predicate]:
    """Passes records whose timestamp falls on ``day``. Records with no timestamp fail."""
    wanted = date_part(day) if not is_empty(day) else None
    if wanted is None:
        return None

    def predicate(record) -> bool:
        return date_part(field_value(record, field)) == wanted

    return predicate


def date_between(field: str, start=None, end=None) -> Optional[Predicate]:
    """Inclusive calendar-date range on a timestamp field."""
    low = date_part(start) if not is_empty(start) else None
    high = date_part(end) if not is_empty(end) else None
    if low is None and high is None:
        return None

    def predicate(record) -> bool:
        day = date_part(field_value(record, field))
        if day is None:
            return False
        if low is not None and day < low:
            return False
        if high is not None and day > high:
            return False
        return True

    return predicate


def one_of(field: str, values: Iterable) -> Optional[Predicate]:
    wanted = {str(v).strip().lower() for v in (values or []) if not is_empty(v)}
    if not wanted:
        return None

    def predicate(record) -> bool:
        actual = field_value(record, field)
        return actual is not None and str(actual).strip().lower() in wanted

    return predicate


def derived_equals(classifier: Callable[[object], str], value) -> Optional[Predicate]:
    """Match a category computed from the record at filter time.

    ``classifier`` is called on every pass, so a classification that depends on a
    live threshold always reflects the current threshold.
    """
    if is_empty(value):
        return None
    wanted = str(value).strip().lower()

    def predicate(record) -> bool:
        return str(classifier(record)).lower() == wanted

    return predicate


def active(predicates: Iterable[Optional[Predicate]]) -> list[Predicate]:
    return [p for p in predicates if p is not None]


def apply_filters(records: Iterable, predicates: Iterable[Optional[Predicate]]) -> list:
    """Keep the records that pass every active predicate."""
    checks = active(predicates)
    if not checks:
        return list(records)
    return [r for r in records if all(check(r) for check in checks)]
