from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from tests.helpers.asserts import api_call, assert_error
from tests.helpers.factories import choice_ids, correct_ids, create_exam


def start(client: TestClient, exam_id: int, headers):
    r = api_call(client, "POST", f"/exams/{exam_id}/start", headers=headers)
    assert r.status_code == 201
    return r.json()["data"]


def test_start_attempt_endpoint(client: TestClient, db_session: Session, student_headers, admin_headers):
    print("\n[TEST] Starting an attempt")
    exam = create_exam(db_session, duration_minutes=15)
    attempt = start(client, exam.id, student_headers)
    assert attempt["examId"] == exam.id
    assert attempt["attemptNumber"] == 1
    assert attempt["deadline"] is not None

    r = client.post(f"/exams/{exam.id}/start", headers=student_headers)
    error = assert_error(r, 409, "AttemptLimitExceeded")
    assert error["details"] == {"maxAttempts": 1, "attemptsUsed": 1}

    r = client.post(f"/exams/{exam.id}/start", headers=admin_headers)
    assert_error(r, 403, "Forbidden")


def test_start_unpublished_exam(client: TestClient, db_session: Session, student_headers):
    exam = create_exam(db_session, published=False)
    r = client.post(f"/exams/{exam.id}/start", headers=student_headers)
    assert_error(r, 403, "ExamNotPublished")
    r = client.post("/exams/9999/start", headers=student_headers)
    assert_error(r, 404, "NotFound")


def test_answer_round_trip(client: TestClient, db_session: Session, student_headers):
    print("\n[TEST] Answer, read back, clear")
    exam = create_exam(db_session, duration_minutes=0)
    single, multi = exam.questions
    attempt = start(client, exam.id, student_headers)
    assert attempt["deadline"] is None
    path = f"/attempts/{attempt['attemptId']}"

    api_call(client, "POST", f"{path}/answer", headers=student_headers,
             json={"questionId": multi.id, "selectedChoiceIds": choice_ids(multi, "2")})
    r = api_call(client, "GET", path, headers=student_headers)
    details = r.json()["data"]
    assert details["remainingSeconds"] is None
    assert details["answers"] == [{"questionId": multi.id, "selectedChoiceIds": choice_ids(multi, "2"), "flagged": False}]
    assert all("isCorrect" not in c for q in details["questions"] for c in q["choices"])

    api_call(client, "POST", f"{path}/answer", headers=student_headers,
             json={"questionId": multi.id, "selectedChoiceIds": []})
    api_call(client, "POST", f"{path}/flag", headers=student_headers,
             json={"questionId": single.id, "flagged": True})
    r = api_call(client, "GET", path, headers=student_headers)
    answers = {a["questionId"]: a for a in r.json()["data"]["answers"]}
    assert answers[multi.id]["selectedChoiceIds"] == []
    assert answers[single.id]["flagged"] is True


def test_answer_rejections(client: TestClient, db_session: Session, student_headers, other_student_headers):
    exam = create_exam(db_session)
    single = exam.questions[0]
    attempt = start(client, exam.id, student_headers)
    path = f"/attempts/{attempt['attemptId']}"

    r = client.post(f"{path}/answer", headers=student_headers,
                    json={"questionId": single.id, "selectedChoiceIds": choice_ids(single, "3", "4")})
    assert_error(r, 422, "ValidationFailed")

    r = client.post(f"{path}/answer", headers=other_student_headers,
                    json={"questionId": single.id, "selectedChoiceIds": correct_ids(single)})
    assert_error(r, 403, "Forbidden")

    r = client.get(path, headers=other_student_headers)
    assert_error(r, 403, "Forbidden")

    r = client.post("/attempts/9999/answer", headers=student_headers,
                    json={"questionId": single.id, "selectedChoiceIds": correct_ids(single)})
    assert_error(r, 404, "NotFound")


def test_submit_and_result(client: TestClient, db_session: Session, student_headers, admin_headers):
    print("\n[TEST] Submit and fetch the result")
    exam = create_exam(db_session)
    single, multi = exam.questions
    attempt = start(client, exam.id, student_headers)
    path = f"/attempts/{attempt['attemptId']}"

    r = client.get(f"{path}/result", headers=student_headers)
    assert_error(r, 409, "AttemptNotSubmitted")

    api_call(client, "POST", f"{path}/answer", headers=student_headers,
             json={"questionId": single.id, "selectedChoiceIds": correct_ids(single)})
    r = client.post(f"{path}/submit", headers=student_headers, json={"trigger": "manual"})
    error = assert_error(r, 422, "ValidationFailed")
    assert error["details"] == {"unansweredQuestionIds": [multi.id]}

    api_call(client, "POST", f"{path}/answer", headers=student_headers,
             json={"questionId": multi.id, "selectedChoiceIds": choice_ids(multi, "2")})
    r = api_call(client, "POST", f"{path}/submit", headers=student_headers, json={"trigger": "manual"})
    result = r.json()["data"]
    assert result["score"] == 50.0
    assert result["correctTotal"] == 1
    assert result["questionsTotal"] == 2
    assert [q["isCorrect"] for q in result["questions"]] == [True, False]
    assert result["questions"][1]["correctChoiceIds"] == correct_ids(multi)

    r = client.post(f"{path}/submit", headers=student_headers, json={"trigger": "timer"})
    assert_error(r, 409, "AttemptAlreadySubmitted")
    r = client.post(f"{path}/answer", headers=student_headers,
                    json={"questionId": multi.id, "selectedChoiceIds": correct_ids(multi)})
    assert_error(r, 409, "AttemptAlreadySubmitted")

    r = api_call(client, "GET", f"{path}/result", headers=student_headers)
    assert r.json()["data"]["score"] == 50.0
    r = api_call(client, "GET", f"{path}/result", headers=admin_headers)
    assert r.json()["data"]["attemptId"] == attempt["attemptId"]

    r = api_call(client, "GET", "/attempts/mine", headers=student_headers)
    mine = r.json()["data"]
    assert len(mine) == 1
    assert mine[0]["examTitle"] == exam.title
    assert mine[0]["score"] == 50.0


def test_timer_submit_accepts_unanswered_questions(client: TestClient, db_session: Session, student_headers):
    exam = create_exam(db_session)
    attempt = start(client, exam.id, student_headers)
    r = client.post(f"/attempts/{attempt['attemptId']}/submit", headers=student_headers, json={"trigger": "timer"})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["score"] == 0.0
