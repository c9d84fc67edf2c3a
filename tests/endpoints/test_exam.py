from fastapi.testclient import TestClient
from tests.helpers.asserts import api_call, assert_error


def single_choice_question(text="2+2?"):
    return {
        "text": text,
        "type": "single_choice",
        "choices": [
            {"text": "3", "isCorrect": False},
            {"text": "4", "isCorrect": True},
            {"text": "5", "isCorrect": False},
        ],
    }


def create_exam(client: TestClient, headers, **overrides):
    payload = {"title": "Endpoint Exam", "durationMinutes": 20, "maxAttempts": 1, **overrides}
    response = api_call(client, "POST", "/exams/", headers=headers, json=payload)
    assert response.status_code == 201
    return response.json()["data"]


def test_exam_crud(client: TestClient, admin_headers):
    print("\n[TEST] Exam CRUD")
    exam = create_exam(client, admin_headers, description="Basics")
    assert exam["published"] is False
    assert exam["durationMinutes"] == 20
    assert exam["createdBy"] == 1
    assert exam["questionCount"] == 0

    r = api_call(client, "GET", f"/exams/{exam['id']}", headers=admin_headers)
    assert r.json()["data"]["title"] == "Endpoint Exam"

    r = api_call(client, "PUT", f"/exams/{exam['id']}", headers=admin_headers, json={"title": "Renamed", "questionsPerPage": 3})
    assert r.json()["data"]["title"] == "Renamed"
    assert r.json()["data"]["questionsPerPage"] == 3

    r = api_call(client, "GET", "/exams/", headers=admin_headers)
    assert [e["id"] for e in r.json()["data"]] == [exam["id"]]

    api_call(client, "DELETE", f"/exams/{exam['id']}", headers=admin_headers)
    r = client.get(f"/exams/{exam['id']}", headers=admin_headers)
    assert_error(r, 404, "NotFound")


def test_exam_create_validation(client: TestClient, admin_headers):
    r = client.post("/exams/", headers=admin_headers, json={"title": "   "})
    assert_error(r, 422, "ValidationFailed")
    r = client.post("/exams/", headers=admin_headers, json={"title": "Bad", "maxAttempts": 0})
    assert_error(r, 422, "ValidationFailed")


def test_exam_routes_require_admin(client: TestClient, student_headers):
    print("\n[TEST] Admin routes reject missing or student tokens")
    r = client.get("/exams/")
    assert_error(r, 401, "NotAuthenticated")
    r = client.get("/exams/", headers={"Authorization": "Bearer not-a-token"})
    assert_error(r, 401, "NotAuthenticated")
    r = client.post("/exams/", headers=student_headers, json={"title": "Nope"})
    assert_error(r, 403, "Forbidden")


def test_question_crud_through_exam(client: TestClient, admin_headers):
    print("\n[TEST] Question create, update and delete")
    exam = create_exam(client, admin_headers)

    r = api_call(client, "POST", f"/exams/{exam['id']}/questions", headers=admin_headers, json=single_choice_question())
    assert r.status_code == 201
    question = r.json()["data"]
    assert question["type"] == "single_choice"
    assert [c["isCorrect"] for c in question["choices"]] == [False, True, False]
    assert [c["order"] for c in question["choices"]] == [1, 2, 3]

    choices = question["choices"]
    update = {
        "type": "multi_choice",
        "choices": [
            {"id": choices[0]["id"], "text": "three", "isCorrect": True, "order": 1},
            {"id": choices[1]["id"], "text": "4", "isCorrect": True, "order": 2},
            {"text": "6", "isCorrect": False, "order": 3},
        ],
    }
    r = api_call(client, "PUT", f"/questions/{question['id']}", headers=admin_headers, json=update)
    updated = r.json()["data"]
    assert updated["type"] == "multi_choice"
    assert [c["text"] for c in updated["choices"]] == ["three", "4", "6"]
    assert updated["choices"][0]["id"] == choices[0]["id"]
    assert choices[2]["id"] not in [c["id"] for c in updated["choices"]]

    r = api_call(client, "GET", f"/exams/{exam['id']}/questions", headers=admin_headers)
    assert len(r.json()["data"]) == 1

    api_call(client, "DELETE", f"/questions/{question['id']}", headers=admin_headers)
    r = client.get(f"/questions/{question['id']}", headers=admin_headers)
    assert_error(r, 404, "NotFound")


def test_invalid_question_is_rejected(client: TestClient, admin_headers):
    exam = create_exam(client, admin_headers)
    payload = {
        "text": "No correct answer",
        "type": "multi_choice",
        "choices": [{"text": "A", "isCorrect": False}, {"text": "B", "isCorrect": False}],
    }
    r = client.post(f"/exams/{exam['id']}/questions", headers=admin_headers, json=payload)
    error = assert_error(r, 422, "ValidationFailed")
    assert error["details"]["reasons"]

    r = client.put("/questions/9999", headers=admin_headers, json={"text": "Missing"})
    assert_error(r, 404, "NotFound")


def test_publish_gate(client: TestClient, admin_headers):
    print("\n[TEST] Publish gate")
    exam = create_exam(client, admin_headers)

    r = api_call(client, "GET", f"/exams/{exam['id']}/publish-check", headers=admin_headers)
    assert r.json()["data"]["ok"] is False

    r = client.post(f"/exams/{exam['id']}/publish", headers=admin_headers)
    error = assert_error(r, 422, "ValidationFailed")
    assert any("no questions" in reason for reason in error["details"]["reasons"])

    r = client.put(f"/exams/{exam['id']}", headers=admin_headers, json={"published": True})
    assert_error(r, 422, "ValidationFailed")

    api_call(client, "POST", f"/exams/{exam['id']}/questions", headers=admin_headers, json=single_choice_question())
    r = api_call(client, "GET", f"/exams/{exam['id']}/publish-check", headers=admin_headers)
    assert r.json()["data"] == {"ok": True, "reasons": []}

    r = api_call(client, "POST", f"/exams/{exam['id']}/publish", headers=admin_headers)
    assert r.json()["data"]["published"] is True

    r = api_call(client, "POST", f"/exams/{exam['id']}/unpublish", headers=admin_headers)
    assert r.json()["data"]["published"] is False


def test_published_exams_for_students(client: TestClient, admin_headers, student_headers):
    draft = create_exam(client, admin_headers, title="Draft")
    live = create_exam(client, admin_headers, title="Live")
    api_call(client, "POST", f"/exams/{live['id']}/questions", headers=admin_headers, json=single_choice_question())
    api_call(client, "POST", f"/exams/{live['id']}/publish", headers=admin_headers)

    r = api_call(client, "GET", "/exams/published", headers=student_headers)
    exams = r.json()["data"]
    assert [e["id"] for e in exams] == [live["id"]]
    assert exams[0]["questionCount"] == 1
    assert draft["id"] not in [e["id"] for e in exams]


def test_csv_import_endpoint(client: TestClient, admin_headers):
    print("\n[TEST] CSV import endpoint")
    exam = create_exam(client, admin_headers)
    content = b'text,type,choices,correct\n"2+2?",single_choice,"2|3|4|5","4"\n'
    r = client.post(
        f"/exams/{exam['id']}/questions/import",
        headers=admin_headers,
        files={"file": ("questions.csv", content, "text/csv")}
    )
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["createdQuestions"] == 1
    choices = data["questions"][0]["choices"]
    assert [c["text"] for c in choices] == ["2", "3", "4", "5"]
    assert [c["isCorrect"] for c in choices] == [False, False, True, False]

    r = client.post(
        f"/exams/{exam['id']}/questions/import",
        headers=admin_headers,
        files={"file": ("questions.csv", b'"Q",essay,"A|B","A"\n', "text/csv")}
    )
    error = assert_error(r, 400, "ImportParseError")
    assert error["details"] == {"row": 1}


def test_error_envelope_carries_request_id(client: TestClient, admin_headers):
    r = client.get("/exams/9999", headers={**admin_headers, "X-Request-ID": "req-123"})
    assert r.status_code == 404
    body = r.json()
    assert body["request_id"] == "req-123"
    assert r.headers["X-Request-ID"] == "req-123"
    assert body["error"]["message"] == "Exam not found."


def test_question_update_rejects_repeated_choice_id(client: TestClient, admin_headers):
    print("\n[TEST] Repeating an existing choice id in an update is rejected")
    exam = create_exam(client, admin_headers)
    question = api_call(client, "POST", f"/exams/{exam['id']}/questions", headers=admin_headers,
                        json=single_choice_question()).json()["data"]
    api_call(client, "POST", f"/exams/{exam['id']}/publish", headers=admin_headers)
    four = question["choices"][1]["id"]

    r = client.put(f"/questions/{question['id']}", headers=admin_headers, json={
        "choices": [
            {"id": four, "text": "4", "isCorrect": True},
            {"id": four, "text": "four", "isCorrect": False},
        ],
    })
    error = assert_error(r, 422, "ValidationFailed")
    assert error["details"]["choiceIds"] == [four]

    stored = api_call(client, "GET", f"/questions/{question['id']}", headers=admin_headers).json()["data"]
    assert [(c["text"], c["isCorrect"]) for c in stored["choices"]] == [("3", False), ("4", True), ("5", False)]
    r = api_call(client, "GET", f"/exams/{exam['id']}/publish-check", headers=admin_headers)
    assert r.json()["data"]["ok"] is True


def test_published_exam_keeps_its_last_question(client: TestClient, admin_headers):
    print("\n[TEST] Last question of a published exam cannot be deleted")
    exam = create_exam(client, admin_headers)
    first = api_call(client, "POST", f"/exams/{exam['id']}/questions", headers=admin_headers,
                     json=single_choice_question("2+2?")).json()["data"]
    second = api_call(client, "POST", f"/exams/{exam['id']}/questions", headers=admin_headers,
                      json=single_choice_question("3+1?")).json()["data"]
    api_call(client, "POST", f"/exams/{exam['id']}/publish", headers=admin_headers)

    api_call(client, "DELETE", f"/questions/{first['id']}", headers=admin_headers)
    r = client.delete(f"/questions/{second['id']}", headers=admin_headers)
    assert_error(r, 422, "ValidationFailed")

    api_call(client, "POST", f"/exams/{exam['id']}/unpublish", headers=admin_headers)
    api_call(client, "DELETE", f"/questions/{second['id']}", headers=admin_headers)
    r = api_call(client, "GET", f"/exams/{exam['id']}/questions", headers=admin_headers)
    assert r.json()["data"] == []
