from examhall.core.constants import QuestionTypeEnum
from examhall.models.choice import Choice
from examhall.models.exam import Exam
from examhall.models.question import Question
from examhall.services.publish_gate import can_publish


def make_question(question_type, *flags):
    return Question(
        text="Question",
        question_type=question_type,
        choices=[Choice(text=f"Choice {i}", is_correct=flag, order=i + 1) for i, flag in enumerate(flags)]
    )


def test_can_publish_valid_exam():
    print("\n[TEST] Publishable exam")
    exam = Exam(title="Midterm")
    questions = [
        make_question(QuestionTypeEnum.SINGLE_CHOICE, False, True),
        make_question(QuestionTypeEnum.MULTI_CHOICE, True, True, False),
    ]
    result = can_publish(exam, questions)
    assert result.ok
    assert result.reasons == []


def test_can_publish_rejects_empty_exam():
    print("\n[TEST] Exam without questions")
    result = can_publish(Exam(title="Empty"), [])
    assert not result.ok
    assert any("no questions" in reason for reason in result.reasons)


def test_can_publish_rejects_blank_title():
    result = can_publish(Exam(title="  "), [make_question(QuestionTypeEnum.SINGLE_CHOICE, True, False)])
    assert not result.ok
    assert any("title" in reason.lower() for reason in result.reasons)


def test_can_publish_lists_every_bad_question():
    print("\n[TEST] Every offending question is reported")
    questions = [
        make_question(QuestionTypeEnum.SINGLE_CHOICE, True, True),
        make_question(QuestionTypeEnum.MULTI_CHOICE, False, False),
        make_question(QuestionTypeEnum.SINGLE_CHOICE, True),
        make_question(QuestionTypeEnum.SINGLE_CHOICE, True, False),
    ]
    result = can_publish(Exam(title="Broken"), questions)
    assert not result.ok
    assert any(reason.startswith("Question 1") for reason in result.reasons)
    assert any(reason.startswith("Question 2") for reason in result.reasons)
    assert any(reason.startswith("Question 3") for reason in result.reasons)
    assert not any(reason.startswith("Question 4") for reason in result.reasons)
