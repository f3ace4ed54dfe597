"""Deterministic ordering applied after filtering and before paging."""
from dataclasses import dataclass
from typing import Iterable

from guidance_console.filters import field_value


@dataclass(frozen=True)
class SortSpec:
    key: str
    descending: bool = True
    tiebreak: str = "id"
    missing: object = 0  # stands in for a missing primary value


def sort_records(records: Iterable, key: str, descending: bool = True,
                 tiebreak: str = "id", missing=0) -> list:
    """Order records by ``key``, ties broken by ascending ``tiebreak``.

    Two stable passes: tie-break first, then primary. ``reverse=True`` keeps
    equal elements in their existing order, so ties stay ascending either way.
    """
    def primary(record):
        value = field_value(record, key)
        return missing if value is None else value

    def secondary(record):
        value = field_value(record, tiebreak)
        return 0 if value is None else value

    ordered = sorted(records, key=secondary)
    ordered.sort(key=primary, reverse=descending)
    return ordered


def apply_sort(records: Iterable, spec: SortSpec) -> list:
    return sort_records(records, spec.key, spec.descending, spec.tiebreak, spec.missing)
