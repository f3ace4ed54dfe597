"""Tests for the remote result fetcher."""
from guidance_console.api import ApiError
from guidance_console.fetcher import ResultFetcher, clean_params
from guidance_console.models import WorkingSet

PATH = "/rows"


def parse(data):
    rows = data["rows"]
    return WorkingSet(records=rows, total=len(rows))


def test_clean_params_drops_empty_values():
    assert clean_params({"year": "", "exam_id": None, "q": "  ", "limit": 0}) == {"limit": 0}
    assert clean_params({"include_archived": True}) == {"include_archived": "true"}
    assert clean_params({"include_archived": False}) == {"include_archived": "false"}
    assert clean_params(None) == {}


def test_fetch_replaces_working_set(fake_client):
    fake_client.responses[("GET", PATH)] = {"rows": [1, 2, 3]}
    fetcher = ResultFetcher(fake_client, PATH, parse)
    assert fetcher.fetch({"year": "2025", "exam_id": ""}) is True
    assert fetcher.records == [1, 2, 3]
    assert fetcher.loaded
    assert not fetcher.loading
    assert fetcher.error is None
    assert fake_client.calls == [("GET", PATH, {"year": "2025"}, None)]


def test_failed_fetch_keeps_previous_working_set(fake_client):
    fake_client.responses[("GET", PATH)] = {"rows": [1, 2]}
    fetcher = ResultFetcher(fake_client, PATH, parse)
    fetcher.fetch()
    fake_client.responses[("GET", PATH)] = ApiError("Server returned HTTP 500", 500)
    assert fetcher.fetch({"year": "2024"}) is False
    assert fetcher.records == [1, 2]
    assert fetcher.error == "Server returned HTTP 500"
    assert not fetcher.loading


def test_malformed_payload_is_a_fetch_error(fake_client):
    fake_client.responses[("GET", PATH)] = {"unexpected": True}
    fetcher = ResultFetcher(fake_client, PATH, parse)
    assert fetcher.fetch() is False
    assert "Malformed response" in fetcher.error
    assert fetcher.records == []


def test_successful_fetch_clears_error(fake_client):
    fake_client.responses[("GET", PATH)] = ApiError("down")
    fetcher = ResultFetcher(fake_client, PATH, parse)
    fetcher.fetch()
    fake_client.responses[("GET", PATH)] = {"rows": [7]}
    fetcher.refresh()
    assert fetcher.error is None
    assert fetcher.records == [7]


def test_refresh_if_changed_skips_identical_params(fake_client):
    fake_client.responses[("GET", PATH)] = {"rows": []}
    fetcher = ResultFetcher(fake_client, PATH, parse)
    fetcher.fetch({"year": "2025", "start_date": ""})
    assert fetcher.refresh_if_changed({"year": "2025", "start_date": None}) is False
    assert len(fake_client.calls) == 1
    assert fetcher.refresh_if_changed({"year": "2024"}) is True
    assert len(fake_client.calls) == 2


def test_refresh_reuses_last_params(fake_client):
    fake_client.responses[("GET", PATH)] = {"rows": []}
    fetcher = ResultFetcher(fake_client, PATH, parse)
    fetcher.fetch({"year": "2025"})
    fetcher.refresh()
    assert fake_client.calls[-1][2] == {"year": "2025"}


def test_superseded_response_is_discarded(fake_client):
    fetcher = ResultFetcher(fake_client, PATH, parse)

    def respond(params, data):
        if params == {"year": "2024"}:
            # a newer request is issued while this one is still in flight
            fetcher.fetch({"year": "2025"})
            return {"rows": ["old"]}
        return {"rows": ["new"]}

    fake_client.responses[("GET", PATH)] = respond
    assert fetcher.fetch({"year": "2024"}) is False
    assert fetcher.records == ["new"]
    assert fetcher.last_params == {"year": "2025"}


def test_superseded_failure_is_ignored(fake_client):
    fetcher = ResultFetcher(fake_client, PATH, parse)

    def respond(params, data):
        if params == {"year": "2024"}:
            fetcher.fetch({"year": "2025"})
            raise ApiError("old request failed")
        return {"rows": ["new"]}

    fake_client.responses[("GET", PATH)] = respond
    fetcher.fetch({"year": "2024"})
    assert fetcher.error is None
    assert fetcher.records == ["new"]


def test_replace_records_adjusts_total(fake_client):
    fake_client.responses[("GET", PATH)] = {"rows": [1, 2, 3]}
    fetcher = ResultFetcher(fake_client, PATH, parse)
    fetcher.fetch()
    fetcher.replace_records([1, 3])
    assert fetcher.records == [1, 3]
    assert fetcher.working_set.total == 2


def test_replace_records_rebuilds_derived_facets(fake_client):
    fake_client.responses[("GET", PATH)] = {"rows": [1, 2, 3]}
    fetcher = ResultFetcher(fake_client, PATH, parse, derive_facets=lambda records: {"largest": max(records)})
    fetcher.fetch()
    fetcher.working_set.facets.update(largest=3, years=["2025"])
    fetcher.replace_records([1, 2])
    assert fetcher.working_set.facets == {"largest": 2, "years": ["2025"]}
