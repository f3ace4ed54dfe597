"""Page slicing over an ordered collection."""
import math
from dataclasses import dataclass
from urllib.parse import parse_qs, urlencode

from guidance_console.config import SHOW_ALL, DEFAULT_PAGE_SIZE, PAGE_SIZE_CHOICES


@dataclass
class Page:
    items: list
    page: int
    page_size: int
    total: int
    total_pages: int
    start_index: int  # 0-based, inclusive
    end_index: int  # 0-based, exclusive

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    def describe(self) -> str:
        if self.total == 0:
            return "No records"
        return (f"Page {self.page} of {self.total_pages} "
                f"({self.start_index + 1}-{self.end_index} of {self.total})")


def validate_page_size(page_size: int) -> int:
    if page_size == SHOW_ALL:
        return page_size
    if not isinstance(page_size, int) or isinstance(page_size, bool) or page_size < 1:
        raise ValueError(f"Page size must be a positive integer or {SHOW_ALL} (show all)")
    return page_size


def total_pages_for(total: int, page_size: int) -> int:
    if page_size == SHOW_ALL or total == 0:
        return 1
    return math.ceil(total / page_size)


def clamp_page(page: int, total_pages: int) -> int:
    return max(1, min(page, total_pages))


def paginate(records, page_size: int, page: int = 1) -> Page:
    """Slice ``records`` into the requested 1-based page.

    ``page_size == SHOW_ALL`` returns everything as a single page. Out-of-range
    page numbers clamp to the nearest valid page instead of failing.
    """
    validate_page_size(page_size)
    items = list(records)
    total = len(items)
    total_pages = total_pages_for(total, page_size)
    page = clamp_page(page, total_pages)
    if page_size == SHOW_ALL:
        return Page(items, 1, page_size, total, 1, 0, total)
    start = (page - 1) * page_size
    end = min(start + page_size, total)
    return Page(items[start:end], page, page_size, total, total_pages, start, end)


@dataclass
class PageWindow:
    page_size: int = DEFAULT_PAGE_SIZE
    page: int = 1

    def __post_init__(self):
        validate_page_size(self.page_size)

    def reset(self) -> None:
        self.page = 1

    def set_page_size(self, page_size: int) -> None:
        self.page_size = validate_page_size(page_size)
        self.reset()

    def go_to(self, page: int, total_pages: int) -> None:
        self.page = clamp_page(page, total_pages)

    def next(self, total_pages: int) -> None:
        self.go_to(self.page + 1, total_pages)

    def previous(self, total_pages: int) -> None:
        self.go_to(self.page - 1, total_pages)


def items_per_page_options(total: int) -> list[int]:
    """Page sizes worth offering for a working set of ``total`` records."""
    options = [size for size in PAGE_SIZE_CHOICES if size <= total or total == 0]
    if not options or total > max(PAGE_SIZE_CHOICES):
        options = list(PAGE_SIZE_CHOICES)
    return sorted(set(options)) + [SHOW_ALL]


def window_to_query(window: PageWindow) -> str:
    return urlencode({"per_page": window.page_size, "page": window.page})


def window_from_query(query: str, default_size: int = DEFAULT_PAGE_SIZE) -> PageWindow:
    """Rebuild a window from a query string such as ``per_page=30&page=2``.

    Unparseable or invalid values fall back to the defaults.
    """
    params = parse_qs(query.lstrip("?"))

    def _int(name, fallback):
        try:
            return int(params[name][0])
        except (KeyError, IndexError, ValueError):
            return fallback

    size = _int("per_page", default_size)
    try:
        validate_page_size(size)
    except ValueError:
        size = default_size
    page = max(1, _int("page", 1))
    return PageWindow(page_size=size, page=page)
