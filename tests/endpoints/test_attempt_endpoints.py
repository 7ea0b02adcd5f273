from fastapi.testclient import TestClient

from tests.helpers.asserts import api_call, api_data, assert_error, create_open_exam


def test_exam_lifecycle_over_http(client: TestClient):
    """Start an attempt, answer, navigate, submit and read the result back."""
    print("\n[TEST] Attempt lifecycle")

    exam = create_open_exam(client)
    assert api_data(client, "GET", f"/exams/{exam['id']}")["status"] == "ONGOING"

    print("[1] Starting attempt")
    view = api_data(client, "POST", "/attempts/", json={"exam_id": exam["id"], "candidate_name": "Ada"})
    submission_id = view["submission_id"]
    assert view["status"] == "ACTIVE"
    assert view["current_question"]["id"] == "q1"

    print("[2] Answering")
    answer = api_data(client, "PUT", f"/attempts/{submission_id}/answers/q1", json={"answer": "Network"})
    assert answer["answer"] == "Network"
    api_call(client, "PUT", f"/attempts/{submission_id}/answers/q3", json={"answer": "TCP is reliable."})

    print("[3] Navigating")
    state = api_data(client, "POST", f"/attempts/{submission_id}/navigate", json={"direction": "next"})
    assert state["current_question_index"] == 1
    assert set(state["answers"]) == {"q1", "q3"}

    print("[4] Recording a focus event")
    submission = api_data(client, "POST", f"/attempts/{submission_id}/events", json={"type": "FOCUS_LOST"})
    assert submission["timeline_events"][-1]["type"] == "FOCUS_LOST"

    print("[5] Submitting")
    result = api_data(client, "POST", f"/attempts/{submission_id}/finalize")
    assert result["status"] == "COMPLETED"
    assert result["answered"] == 2
    assert result["total_questions"] == 3
    assert result["final_score"] == 10

    again = api_data(client, "POST", f"/attempts/{submission_id}/finalize")
    assert again["submitted_at"] == result["submitted_at"]

    response = client.put(f"/attempts/{submission_id}/answers/q2", json={"answer": "late"})
    assert_error(response, 409, "CONFLICT")
    print("[OK] Attempt lifecycle complete")


def test_start_attempt_for_unknown_exam(client: TestClient):
    response = client.post("/attempts/", json={"exam_id": "exam-missing", "candidate_name": "Ada"})

    assert_error(response, 404, "NOT_FOUND")


def test_start_attempt_for_draft_exam(client: TestClient):
    exam = create_open_exam(client, status="DRAFT")

    response = client.post("/attempts/", json={"exam_id": exam["id"], "candidate_name": "Ada"})

    assert_error(response, 409, "CONFLICT")


def test_navigation_requires_single_target(client: TestClient):
    exam = create_open_exam(client)
    view = api_data(client, "POST", "/attempts/", json={"exam_id": exam["id"], "candidate_name": "Ada"})

    response = client.post(
        f"/attempts/{view['submission_id']}/navigate", json={"index": 1, "direction": "next"}
    )

    body = assert_error(response, 422, "VALIDATION_ERROR")
    assert body["error"]["details"]["validation_errors"]


def test_resume_returns_same_attempt(client: TestClient):
    exam = create_open_exam(client)
    view = api_data(client, "POST", "/attempts/", json={"exam_id": exam["id"], "candidate_name": "Ada"})
    api_call(client, "PUT", f"/attempts/{view['submission_id']}/answers/q2", json={"answer": "Random Access Memory"})

    resumed = api_data(client, "POST", "/attempts/", json={
        "exam_id": exam["id"],
        "candidate_name": "Ada",
        "submission_id": view["submission_id"],
    })

    assert resumed["submission_id"] == view["submission_id"]
    assert resumed["answered"] == ["q2"]
    assert resumed["progress"] == 33


def test_responses_carry_request_id(client: TestClient):
    response = client.get("/exams/", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-123"


def test_exam_list_reports_derived_status(client: TestClient):
    exam = create_open_exam(client, status="UPCOMING")

    listed = api_data(client, "GET", "/exams/")

    assert [e["status"] for e in listed if e["id"] == exam["id"]] == ["ONGOING"]


def test_unknown_route_uses_error_envelope(client: TestClient):
    assert_error(client.get("/nowhere"), 404, "NOT_FOUND")
