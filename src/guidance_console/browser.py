"""The filter -> sort -> page pipeline shared by every list view."""
import logging
from typing import Callable, Iterable, Optional
from urllib.parse import parse_qs, urlencode

from guidance_console.config import DEFAULT_PAGE_SIZE
from guidance_console.fetcher import ResultFetcher
from guidance_console.filters import Predicate, apply_filters, is_empty
from guidance_console.pager import Page, PageWindow, paginate, validate_page_size
from guidance_console.prefs import PreferenceGroup, coerce
from guidance_console.sorting import SortSpec, apply_sort

logger = logging.getLogger(__name__)

PAGE_SIZE_FIELD = "items_per_page"


class ResultBrowser:
    """Filter state, page window and working set for one view.

    ``prefs.defaults`` declares every filter plus ``items_per_page``. Fields named
    in ``server_fields`` are sent with the fetch; changing one re-fetches. All other
    filters run in memory over the fetched working set and never touch the network.
    Every filter, page-size or data change puts the window back on page 1.
    """

    def __init__(self, fetcher: ResultFetcher, prefs: PreferenceGroup, server_fields: Iterable[str],
                 build_predicates: Callable[[dict], list[Optional[Predicate]]], sort_spec: SortSpec) -> None:
        if PAGE_SIZE_FIELD not in prefs.defaults:
            raise ValueError(f"Preference defaults must include {PAGE_SIZE_FIELD!r}")
        self.fetcher = fetcher
        self.prefs = prefs
        self.server_fields = tuple(server_fields)
        self.build_predicates = build_predicates
        self.sort_spec = sort_spec
        self.state = prefs.load()
        self.window = PageWindow(page_size=self._hydrated_page_size(self.state.pop(PAGE_SIZE_FIELD)))

    def _hydrated_page_size(self, size) -> int:
        try:
            return validate_page_size(size)
        except ValueError:
            logger.warning("Ignoring stored page size %r for %s", size, self.prefs.prefix)
            return self.prefs.defaults.get(PAGE_SIZE_FIELD, DEFAULT_PAGE_SIZE)

    # -- state -----------------------------------------------------------

    @property
    def filters(self) -> dict:
        return dict(self.state)

    @property
    def error(self) -> Optional[str]:
        return self.fetcher.error

    def server_params(self) -> dict:
        return {name: self.state[name] for name in self.server_fields}

    def client_filters(self) -> dict:
        return {k: v for k, v in self.state.items() if k not in self.server_fields}

    def active_filters(self) -> dict:
        return {k: v for k, v in self.state.items() if not is_empty(v)}

    def load(self) -> bool:
        """Fetch with the hydrated server filters.

        The first load keeps the window as hydrated (e.g. a page taken from a
        query string); later loads go back to page 1.
        """
        if self.fetcher.loaded:
            self.window.reset()
        return self.fetcher.fetch(self.server_params())

    def refresh(self) -> bool:
        self.window.reset()
        return self.fetcher.refresh()

    def set_filter(self, name: str, value) -> bool:
        """Change one filter. Returns True when the working set was re-fetched."""
        return self.set_filters(**{name: value})

    def set_filters(self, **values) -> bool:
        changed = []
        for name, value in values.items():
            if name not in self.state:
                raise KeyError(f"Unknown filter: {name}")
            if self.state[name] != value:
                self.state[name] = value
                self.prefs.save(name, value)
                changed.append(name)
        if not changed:
            return False
        self.window.reset()
        if any(name in self.server_fields for name in changed):
            return self.fetcher.refresh_if_changed(self.server_params())
        return False

    def set_page_size(self, page_size: int) -> None:
        self.window.set_page_size(page_size)
        self.prefs.save(PAGE_SIZE_FIELD, page_size)

    def reset_filters(self) -> bool:
        """Back to defaults; clears the stored preferences for this view."""
        defaults = self.prefs.reset()
        page_size = defaults.pop(PAGE_SIZE_FIELD)
        self.state = defaults
        self.window.set_page_size(page_size)
        return self.fetcher.refresh_if_changed(self.server_params())

    def replace_records(self, records: list) -> None:
        """Apply a server-confirmed local change to the working set."""
        self.fetcher.replace_records(records)
        self.window.reset()

    # -- pipeline --------------------------------------------------------

    def filtered(self) -> list:
        return apply_filters(self.fetcher.records, self.build_predicates(self.state))

    def ordered(self) -> list:
        """Filtered and sorted, unpaged: what the table and any report show."""
        return apply_sort(self.filtered(), self.sort_spec)

    def page(self) -> Page:
        current = paginate(self.ordered(), self.window.page_size, self.window.page)
        self.window.page = current.page
        return current

    def go_to(self, page_number: int) -> Page:
        self.window.page = page_number
        return self.page()

    def next_page(self) -> Page:
        self.window.page += 1
        return self.page()

    def previous_page(self) -> Page:
        self.window.page -= 1
        return self.page()

    # -- query string ----------------------------------------------------

    def to_query(self) -> str:
        params = {k: v for k, v in self.active_filters().items()}
        params["per_page"] = self.window.page_size
        params["page"] = self.window.page
        return urlencode(params)

    def apply_query(self, query: str) -> bool:
        """Adopt filters and window from a query string; unknown names are ignored.

        Filters are stored like any other change. ``per_page`` only sizes the
        current window and does not replace the stored page size.
        """
        parsed = {k: v[-1] for k, v in parse_qs(query.lstrip("?")).items()}
        updates = {
            name: coerce(parsed[name], self.prefs.defaults[name])
            for name in self.state if name in parsed
        }
        fetched = self.set_filters(**updates) if updates else False
        if "per_page" in parsed:
            try:
                self.window.set_page_size(validate_page_size(int(parsed["per_page"])))
            except ValueError:
                logger.warning("Ignoring per_page=%r in query", parsed["per_page"])
        if "page" in parsed:
            try:
                self.window.page = max(1, int(parsed["page"]))
            except ValueError:
                logger.warning("Ignoring page=%r in query", parsed["page"])
        return fetched
