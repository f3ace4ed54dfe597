"""Remote working-set fetching with stale-response protection."""
import logging
import threading
from typing import Any, Callable, Dict, Optional

from guidance_console.api import ApiClient, ApiError
from guidance_console.filters import is_empty
from guidance_console.models import WorkingSet

logger = logging.getLogger(__name__)


def clean_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop unset server filters and render booleans the way the API expects."""
    cleaned = {}
    for name, value in (params or {}).items():
        if is_empty(value):
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[name] = value
    return cleaned


class ResultFetcher:
    """Holds the working set of one view and reloads it from the server.

    A failed fetch keeps whatever working set was already loaded and records the
    error. Each request takes a sequence number; a response that arrives after a
    newer request was issued is discarded, so a slow old response can never
    overwrite a fast new one.

    ``derive_facets`` rebuilds the facets that depend on the records themselves
    (counts, distinct values) after a local change; other facets keep the values
    from the last fetch.
    """

    def __init__(self, client: ApiClient, path: str, parse: Callable[[Any], WorkingSet],
                 derive_facets: Optional[Callable[[list], dict]] = None) -> None:
        self.client = client
        self.path = path
        self.parse = parse
        self.derive_facets = derive_facets
        self.working_set = WorkingSet()
        self.error: Optional[str] = None
        self.loading = False
        self.loaded = False
        self.last_params: Optional[Dict[str, Any]] = None
        self._seq = 0
        self._lock = threading.Lock()

    @property
    def records(self) -> list:
        return self.working_set.records

    def fetch(self, params: Optional[Dict[str, Any]] = None) -> bool:
        """Fetch the working set for ``params``. Returns True if it was replaced."""
        cleaned = clean_params(params)
        with self._lock:
            self._seq += 1
            token = self._seq
            self.loading = True
            self.last_params = cleaned
        try:
            data = self.client.get(self.path, params=cleaned)
            working_set = self.parse(data)
        except ApiError as e:
            return self._fail(token, e.message)
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            return self._fail(token, f"Malformed response from {self.path}: {e}")
        return self._accept(token, working_set)

    def refresh(self) -> bool:
        """Re-run the last request with the same server params."""
        return self.fetch(self.last_params)

    def refresh_if_changed(self, params: Optional[Dict[str, Any]]) -> bool:
        """Fetch only when the server-side params differ from the last request."""
        if self.last_params is not None and clean_params(params) == self.last_params:
            return False
        return self.fetch(params)

    def replace_records(self, records: list) -> None:
        """Swap in a locally updated record list after a confirmed mutation."""
        removed = len(self.working_set.records) - len(records)
        self.working_set.records = list(records)
        self.working_set.total = max(0, self.working_set.total - removed)
        if self.derive_facets is not None:
            self.working_set.facets.update(self.derive_facets(self.working_set.records))

    def _accept(self, token: int, working_set: WorkingSet) -> bool:
        with self._lock:
            if token != self._seq:
                logger.debug("Discarding superseded response %d from %s", token, self.path)
                return False
            self.working_set = working_set
            self.error = None
            self.loading = False
            self.loaded = True
        logger.info("Loaded %d records from %s", len(working_set.records), self.path)
        return True

    def _fail(self, token: int, message: str) -> bool:
        with self._lock:
            if token != self._seq:
                logger.debug("Ignoring failure of superseded request %d: %s", token, message)
                return False
            self.error = message
            self.loading = False
        logger.warning("Fetch from %s failed, keeping %d cached records: %s",
                       self.path, len(self.working_set.records), message)
        return False
