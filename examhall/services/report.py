import logging
from typing import Dict, Iterable, List, Optional, Sequence
from sqlalchemy.orm import Session

from examhall.core.cache import cache
from examhall.core.config import settings
from examhall.core.constants import REPORT_CACHE_PREFIX
from examhall.core.exceptions import NotFound
from examhall.crud.exam import exam as crud_exam
from examhall.crud.exam_attempt import exam_attempt as crud_exam_attempt
from examhall.crud.question import question as crud_question
from examhall.crud.student_answer import student_answer as crud_student_answer
from examhall.models.exam import Exam
from examhall.models.exam_attempt import ExamAttempt
from examhall.models.question import Question
from examhall.models.student_answer import StudentAnswer
from examhall.schemas.report import ChoiceCount, ExamReport, QuestionReport, ScoreBucket
from examhall.services.scoring import correct_choice_ids, grade, is_answer_correct

logger = logging.getLogger(__name__)

BUCKET_WIDTH = 10


def report_cache_key(exam_id: int) -> str:
    return cache.generate_key(REPORT_CACHE_PREFIX, exam_id)


def report_generation_key(exam_id: int) -> str:
    return cache.generate_key(REPORT_CACHE_PREFIX, "generation", exam_id)


def score_distribution(scores: Iterable[float]) -> List[ScoreBucket]:
    buckets = [ScoreBucket(lower=lower, upper=lower + BUCKET_WIDTH) for lower in range(0, 100, BUCKET_WIDTH)]
    for score in scores:
        index = min(max(int(score // BUCKET_WIDTH), 0), len(buckets) - 1)
        buckets[index].count += 1
    return buckets


def build_exam_report(exam: Exam, attempts: Sequence[ExamAttempt], answers: Iterable[StudentAnswer],
                      questions: Sequence[Question]) -> ExamReport:
    """Fold every submitted attempt of ``exam`` into aggregate statistics.

    Scores are recomputed against the current answer key rather than read from
    the attempt rows, so the report always agrees with the per-attempt results.
    """
    submitted_ids = {attempt.id for attempt in attempts if attempt.submitted}
    answers_by_attempt: Dict[int, Dict[int, StudentAnswer]] = {}
    for answer in answers:
        if answer.attempt_id in submitted_ids:
            answers_by_attempt.setdefault(answer.attempt_id, {})[answer.question_id] = answer

    scores = [
        grade(answers_by_attempt.get(attempt_id, {}).values(), questions)[0]
        for attempt_id in sorted(submitted_ids)
    ]

    question_reports = []
    answers_total = 0
    correct_total = 0
    for question in questions:
        correct = correct_choice_ids(question)
        counts = {choice.id: 0 for choice in question.choices}
        q_answers = 0
        q_correct = 0
        for attempt_answers in answers_by_attempt.values():
            answer = attempt_answers.get(question.id)
            selected = set(answer.selected_choice_ids or []) if answer else set()
            if not selected:
                continue
            q_answers += 1
            if is_answer_correct(selected, correct):
                q_correct += 1
            for choice_id in selected:
                if choice_id in counts:
                    counts[choice_id] += 1

        answers_total += q_answers
        correct_total += q_correct
        question_reports.append(QuestionReport(
            question_id=question.id,
            text=question.text,
            question_type=question.question_type,
            answers_total=q_answers,
            correct_total=q_correct,
            choice_counts=[
                ChoiceCount(
                    choice_id=choice.id,
                    text=choice.text,
                    count=counts[choice.id],
                    is_correct=choice.is_correct,
                    order=choice.order
                )
                for choice in sorted(question.choices, key=lambda c: (c.order, c.id))
            ]
        ))

    return ExamReport(
        exam_id=exam.id,
        attempts_total=len(attempts),
        submitted_total=len(scores),
        average_score=round(sum(scores) / len(scores), 2) if scores else 0.0,
        min_score=min(scores) if scores else 0.0,
        max_score=max(scores) if scores else 0.0,
        questions_total=len(questions),
        answers_total=answers_total,
        correct_total=correct_total,
        score_distribution=score_distribution(scores),
        questions=question_reports
    )


class ReportService:

    def compute_exam_report(self, db: Session, exam_id: int) -> ExamReport:
        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise NotFound("Exam not found.")

        questions = crud_question.get_by_exam(db, exam_id=exam_id)
        attempts = crud_exam_attempt.get_all_by_exam(db, exam_id=exam_id)
        answers = crud_student_answer.get_submitted_by_exam(db, exam_id=exam_id)
        return build_exam_report(exam, attempts, answers, questions)

    async def get_exam_report(self, db: Session, exam_id: int, ttl: Optional[int] = None) -> ExamReport:
        async def compute() -> dict:
            return self.compute_exam_report(db, exam_id).model_dump(mode="json")

        data = await cache.get_or_compute(
            report_cache_key(exam_id), compute, ttl or settings.REPORT_CACHE_TTL,
            version_key=report_generation_key(exam_id)
        )
        return ExamReport.model_validate(data)

    async def invalidate_exam_report(self, exam_id: int) -> None:
        # Runs after the write has committed; readers that started earlier store under the old generation.
        await cache.incr(report_generation_key(exam_id))
        await cache.delete(report_cache_key(exam_id))
        logger.debug(f"Invalidated report cache for exam {exam_id}")


report_service = ReportService()
