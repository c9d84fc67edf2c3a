from typing import Dict, Iterable, List, Sequence, Tuple

from examhall.models.exam_attempt import ExamAttempt
from examhall.models.question import Question
from examhall.models.student_answer import StudentAnswer
from examhall.schemas.result import AttemptResult, QuestionResult
from examhall.utils.clock import as_utc


def correct_choice_ids(question: Question) -> List[int]:
    return sorted(choice.id for choice in question.choices if choice.is_correct)


def is_answer_correct(selected_choice_ids: Iterable[int], correct_ids: Iterable[int]) -> bool:
    """Exact set match; an empty selection or an empty key never scores."""
    selected = set(selected_choice_ids or [])
    correct = set(correct_ids or [])
    if not selected or not correct:
        return False
    return selected == correct


def calculate_score(correct_total: int, questions_total: int) -> float:
    if questions_total <= 0:
        return 0.0
    return 100.0 * correct_total / questions_total


def answers_by_question(answers: Iterable[StudentAnswer]) -> Dict[int, StudentAnswer]:
    return {answer.question_id: answer for answer in answers}


def grade(answers: Iterable[StudentAnswer], questions: Sequence[Question]) -> Tuple[float, int]:
    """Score and correct count for one attempt's answers."""
    by_question = answers_by_question(answers)
    correct_total = 0
    for question in questions:
        answer = by_question.get(question.id)
        if answer and is_answer_correct(answer.selected_choice_ids, correct_choice_ids(question)):
            correct_total += 1
    return calculate_score(correct_total, len(questions)), correct_total


def score_attempt(attempt: ExamAttempt, answers: Iterable[StudentAnswer],
                  questions: Sequence[Question]) -> AttemptResult:
    by_question = answers_by_question(answers)
    question_results = []
    correct_total = 0

    for question in questions:
        answer = by_question.get(question.id)
        selected = sorted(answer.selected_choice_ids or []) if answer else []
        correct = correct_choice_ids(question)
        is_correct = is_answer_correct(selected, correct)
        if is_correct:
            correct_total += 1
        question_results.append(QuestionResult(
            question_id=question.id,
            text=question.text,
            question_type=question.question_type,
            selected_choice_ids=selected,
            correct_choice_ids=correct,
            is_correct=is_correct,
            flagged=bool(answer.flagged) if answer else False
        ))

    return AttemptResult(
        attempt_id=attempt.id,
        exam_id=attempt.exam_id,
        score=calculate_score(correct_total, len(questions)),
        correct_total=correct_total,
        questions_total=len(questions),
        start_time=as_utc(attempt.start_time),
        end_time=as_utc(attempt.end_time),
        questions=question_results
    )
