from datetime import timedelta
from typing import Optional, Dict, Any
from fastapi.testclient import TestClient

from cbt.utils.time import utcnow
from tests.helpers.fakes import mock_questions

def api_call(client: TestClient, method: str, path: str, headers: Optional[Dict[str, str]] = None, json: Optional[Dict[str, Any]] = None, expected_min: int = 200, expected_max: int = 300):
    response = client.request(method, path, headers=headers, json=json)
    ok = expected_min <= response.status_code < expected_max
    try:
        body = response.json()
    except ValueError:
        body = response.text
    assert ok, f"{method} {path} => {response.status_code}, body={body}, json={json}"
    return response

def api_data(client: TestClient, method: str, path: str, **kwargs):
    """Unwrap the APIResponse envelope of a successful call."""
    body = api_call(client, method, path, **kwargs).json()
    assert "message" in body, f"{method} {path} returned no envelope: {body}"
    return body["data"]

def assert_error(response, status_code: int, code: str):
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["error"]["code"] == code
    assert body["path"].endswith(response.request.url.path)
    assert body["request_id"]
    return body

def create_open_exam(client: TestClient, **overrides):
    """Register an exam whose window is open right now."""
    now = utcnow()
    payload = {
        "title": "Computer Fundamentals",
        "start_time": (now - timedelta(hours=1)).isoformat(),
        "end_time": (now + timedelta(hours=1)).isoformat(),
        "duration_minutes": 30,
        "questions": [{**q, "type": q["type"].value} for q in mock_questions()],
        "config": {"show_results_immediately": True},
    }
    payload.update(overrides)
    return api_data(client, "POST", "/exams/", json=payload)
