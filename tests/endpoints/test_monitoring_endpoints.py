from fastapi.testclient import TestClient

from cbt.utils.time import utcnow
from tests.helpers.asserts import api_data, assert_error, create_open_exam


def test_monitoring_snapshot_over_http(client: TestClient):
    exam = create_open_exam(client)
    other = create_open_exam(client, title="Other")
    first = api_data(client, "POST", "/attempts/", json={"exam_id": exam["id"], "candidate_name": "Ada"})
    api_data(client, "POST", "/attempts/", json={"exam_id": exam["id"], "candidate_name": "Alan"})
    api_data(client, "POST", "/attempts/", json={"exam_id": other["id"], "candidate_name": "Grace"})
    api_data(client, "POST", f"/attempts/{first['submission_id']}/events", json={"type": "CONNECTION_LOST"})

    today = utcnow().date().isoformat()
    snapshot = api_data(client, "POST", "/monitoring/apply", json={"exam_id": exam["id"], "date": today})

    assert snapshot["filter"]["applied"]
    assert snapshot["summary"]["total"] == 2
    assert snapshot["summary"]["disconnected"] == 1
    assert snapshot["summary"]["online"] == 1

    everything = api_data(client, "POST", "/monitoring/apply", json={})
    assert everything["filter"]["exam_id"] == "ALL"
    assert everything["summary"]["total"] == 3

    detail = api_data(client, "GET", f"/monitoring/submissions/{first['submission_id']}")
    assert detail["status"] == "DISCONNECTED"


def test_review_snapshot_over_http(client: TestClient):
    exam = create_open_exam(client)
    view = api_data(client, "POST", "/attempts/", json={"exam_id": exam["id"], "candidate_name": "Ada"})
    api_data(client, "POST", f"/attempts/{view['submission_id']}/finalize")

    snapshot = api_data(client, "POST", "/monitoring/review", json={"exam_id": exam["id"]})

    assert snapshot["summary"]["completed"] == 1
    assert snapshot["summary"]["not_reviewed"] == 1


def test_invalid_date_filter_is_rejected(client: TestClient):
    response = client.post("/monitoring/apply", json={"date": "yesterday"})

    assert_error(response, 422, "VALIDATION_ERROR")


def test_missing_submission_detail(client: TestClient):
    assert_error(client.get("/monitoring/submissions/sub-missing"), 404, "NOT_FOUND")
