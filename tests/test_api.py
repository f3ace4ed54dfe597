"""Tests for the HTTP client and response envelope handling."""
from unittest.mock import MagicMock

import pytest
import requests

from guidance_console.api import ApiClient, ApiError, unwrap


def make_session(status=200, body=None, json_error=False, exc=None):
    session = MagicMock()
    session.headers = {}
    if exc is not None:
        session.request.side_effect = exc
        return session
    response = MagicMock()
    response.ok = 200 <= status < 300
    response.status_code = status
    if json_error:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = body
    session.request.return_value = response
    return session


def test_unwrap_returns_data():
    assert unwrap({"success": True, "message": "ok", "data": [1, 2]}) == [1, 2]


def test_unwrap_without_data_drops_success_flag():
    assert unwrap({"success": True, "found_count": 2}) == {"found_count": 2}


def test_unwrap_passes_bare_payloads_through():
    assert unwrap({"question_stats": []}) == {"question_stats": []}
    assert unwrap([1]) == [1]


def test_unwrap_failure_raises_with_server_message():
    with pytest.raises(ApiError, match="No exams selected"):
        unwrap({"success": False, "message": "No exams selected"})


def test_get_sends_params_and_timeout():
    session = make_session(body={"success": True, "data": {"a": 1}})
    client = ApiClient("http://api.test/", timeout=5, session=session)
    assert client.get("/guidance/exam-results", params={"year": "2025"}) == {"a": 1}
    args, kwargs = session.request.call_args
    assert args == ("GET", "http://api.test/guidance/exam-results")
    assert kwargs["params"] == {"year": "2025"}
    assert kwargs["timeout"] == 5


def test_post_sends_json_body():
    session = make_session(body={"success": True})
    client = ApiClient("http://api.test", session=session)
    client.post("/guidance/exam-results/archive", {"id": 3})
    _, kwargs = session.request.call_args
    assert kwargs["json"] == {"id": 3}


def test_error_status_uses_server_message():
    session = make_session(status=404, body={"success": False, "message": "Exam result not found"})
    client = ApiClient("http://api.test", session=session)
    with pytest.raises(ApiError) as exc_info:
        client.get("/exam-results/9/details")
    assert exc_info.value.message == "Exam result not found"
    assert exc_info.value.status_code == 404


def test_error_status_without_body():
    session = make_session(status=500, json_error=True)
    client = ApiClient("http://api.test", session=session)
    with pytest.raises(ApiError, match="HTTP 500"):
        client.get("/guidance/exam-results")


def test_timeout_becomes_api_error():
    session = make_session(exc=requests.exceptions.Timeout("slow"))
    client = ApiClient("http://api.test", timeout=2, session=session)
    with pytest.raises(ApiError, match="timed out after 2s"):
        client.get("/guidance/question-analysis")


def test_connection_error_becomes_api_error():
    session = make_session(exc=requests.exceptions.ConnectionError("refused"))
    client = ApiClient("http://api.test", session=session)
    with pytest.raises(ApiError, match="Could not reach the server"):
        client.get("/guidance/question-analysis")


def test_non_json_success_body_is_an_error():
    session = make_session(status=200, json_error=True)
    client = ApiClient("http://api.test", session=session)
    with pytest.raises(ApiError, match="non-JSON"):
        client.get("/guidance/exam-management")


def test_success_false_envelope_raises():
    session = make_session(body={"success": False, "message": "Unauthorized"})
    client = ApiClient("http://api.test", session=session)
    with pytest.raises(ApiError, match="Unauthorized"):
        client.put("/guidance/exams/1/toggle-status")
