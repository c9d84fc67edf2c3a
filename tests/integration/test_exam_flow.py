from fastapi.testclient import TestClient
from tests.helpers.asserts import api_call, assert_error


def test_exam_full_flow(client: TestClient, admin_headers, student_headers, other_student_headers):
    """
    Test complete exam flow: authoring, publishing, two student attempts, results and report.
    """
    print("\n[TEST] Exam full flow")

    print("[1] Creating exam")
    r_exam = api_call(client, "POST", "/exams/", headers=admin_headers,
                      json={"title": "Flow Exam", "durationMinutes": 30, "maxAttempts": 1})
    exam_id = r_exam.json()["data"]["id"]
    print(f"[OK] Exam created: {exam_id}")

    print("[2] Adding questions")
    q1 = api_call(client, "POST", f"/exams/{exam_id}/questions", headers=admin_headers, json={
        "text": "2+2?",
        "type": "single_choice",
        "choices": [{"text": "3", "isCorrect": False}, {"text": "4", "isCorrect": True}],
    }).json()["data"]
    q2 = api_call(client, "POST", f"/exams/{exam_id}/questions", headers=admin_headers, json={
        "text": "Pick the primes",
        "type": "multi_choice",
        "choices": [
            {"text": "2", "isCorrect": True},
            {"text": "3", "isCorrect": True},
            {"text": "4", "isCorrect": False},
        ],
    }).json()["data"]
    print(f"[OK] Questions added: {q1['id']}, {q2['id']}")

    print("[3] Publishing exam")
    api_call(client, "POST", f"/exams/{exam_id}/publish", headers=admin_headers)

    q1_correct = [c["id"] for c in q1["choices"] if c["isCorrect"]]
    q2_correct = [c["id"] for c in q2["choices"] if c["isCorrect"]]
    q2_partial = q2_correct[:1]

    print("[4] First student answers one question right and one partially")
    attempt = api_call(client, "POST", f"/exams/{exam_id}/start", headers=student_headers).json()["data"]
    path = f"/attempts/{attempt['attemptId']}"
    api_call(client, "POST", f"{path}/answer", headers=student_headers,
             json={"questionId": q1["id"], "selectedChoiceIds": q1_correct})
    api_call(client, "POST", f"{path}/answer", headers=student_headers,
             json={"questionId": q2["id"], "selectedChoiceIds": q2_partial})
    result = api_call(client, "POST", f"{path}/submit", headers=student_headers, json={}).json()["data"]
    assert result["score"] == 50.0
    print(f"[OK] First student scored {result['score']}")

    print("[5] Second start is refused")
    r = client.post(f"/exams/{exam_id}/start", headers=student_headers)
    assert_error(r, 409, "AttemptLimitExceeded")

    print("[6] Report reflects the first submission")
    report = api_call(client, "GET", f"/exams/{exam_id}/report", headers=admin_headers).json()["data"]
    assert report["submittedTotal"] == 1
    assert report["averageScore"] == 50.0

    print("[7] Second student answers everything correctly")
    attempt = api_call(client, "POST", f"/exams/{exam_id}/start", headers=other_student_headers).json()["data"]
    path = f"/attempts/{attempt['attemptId']}"
    api_call(client, "POST", f"{path}/answer", headers=other_student_headers,
             json={"questionId": q1["id"], "selectedChoiceIds": q1_correct})
    api_call(client, "POST", f"{path}/answer", headers=other_student_headers,
             json={"questionId": q2["id"], "selectedChoiceIds": q2_correct})
    api_call(client, "POST", f"{path}/submit", headers=other_student_headers, json={"trigger": "manual"})

    print("[8] Report is recomputed after the new submission")
    report = api_call(client, "GET", f"/exams/{exam_id}/report", headers=admin_headers).json()["data"]
    assert report["attemptsTotal"] == 2
    assert report["submittedTotal"] == 2
    assert report["averageScore"] == 75.0
    assert report["minScore"] == 50.0
    assert report["maxScore"] == 100.0
    distribution = {bucket["lower"]: bucket["count"] for bucket in report["scoreDistribution"]}
    assert distribution[50] == 1
    assert distribution[90] == 1

    q2_report = next(q for q in report["questions"] if q["questionId"] == q2["id"])
    assert q2_report["answersTotal"] == 2
    assert q2_report["correctTotal"] == 1
    counts = {c["text"]: c["count"] for c in q2_report["choiceCounts"]}
    assert counts == {"2": 2, "3": 1, "4": 0}
    print("[OK] Exam flow complete")


def test_report_for_exam_without_attempts(client: TestClient, admin_headers):
    r_exam = api_call(client, "POST", "/exams/", headers=admin_headers, json={"title": "Quiet Exam"})
    exam_id = r_exam.json()["data"]["id"]
    report = api_call(client, "GET", f"/exams/{exam_id}/report", headers=admin_headers).json()["data"]
    assert report["submittedTotal"] == 0
    assert report["averageScore"] == 0
    assert report["minScore"] == 0
    assert report["maxScore"] == 0
    assert report["questions"] == []

    r = client.get("/exams/9999/report", headers=admin_headers)
    assert_error(r, 404, "NotFound")
