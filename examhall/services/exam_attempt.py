"""
Attempt lifecycle: start, answer, flag, submit and read back.

An attempt moves NotStarted -> InProgress -> Submitted and never leaves
Submitted. Every mutation locks the attempt row and re-checks the submitted
flag and the wall-clock deadline; the transition to Submitted is a single
conditional UPDATE so exactly one caller wins it, whether that caller is a
manual submit, the client timer, or a lazy finalization on read.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from examhall.core.constants import QuestionTypeEnum, SubmitTriggerEnum
from examhall.core.exceptions import (
    AttemptAlreadySubmitted, AttemptExpired, AttemptLimitExceeded, AttemptNotSubmitted,
    ExamNotPublished, Forbidden, NotFound, ValidationFailed
)
from examhall.crud.exam import exam as crud_exam
from examhall.crud.exam_attempt import exam_attempt as crud_exam_attempt
from examhall.crud.question import question as crud_question
from examhall.crud.student_answer import student_answer as crud_student_answer
from examhall.models.exam import Exam
from examhall.models.exam_attempt import ExamAttempt
from examhall.models.question import Question
from examhall.models.student_answer import StudentAnswer
from examhall.schemas.exam_attempt import (
    AttemptAnswer, AttemptExam, ExamAttempt as ExamAttemptSchema, ExamAttemptDetails
)
from examhall.schemas.question import StudentQuestion
from examhall.schemas.result import AttemptResult, StudentResultSummary
from examhall.schemas.user import UserContext
from examhall.services.report import report_service
from examhall.services.scoring import grade, score_attempt
from examhall.utils.clock import as_utc, attempt_deadline, is_expired, utcnow

logger = logging.getLogger(__name__)


class ExamAttemptService:

    def _get_attempt(self, db: Session, attempt_id: int, lock: bool = False) -> ExamAttempt:
        if lock:
            attempt = crud_exam_attempt.get_for_update(db, id=attempt_id)
        else:
            attempt = crud_exam_attempt.get(db, id=attempt_id)
        if not attempt:
            raise NotFound("Exam attempt not found.")
        return attempt

    def _require_owner(self, current_user_context: UserContext, attempt: ExamAttempt, allow_admin: bool = False):
        if current_user_context.is_student and attempt.student_id == current_user_context.user_id:
            return
        if allow_admin and current_user_context.is_admin:
            return
        raise Forbidden("You can only access your own exam attempts.")

    def _deadline(self, attempt: ExamAttempt, exam: Exam) -> Optional[datetime]:
        return attempt_deadline(attempt.start_time, exam.duration_minutes)

    def _require_in_progress(self, attempt: ExamAttempt, exam: Exam, now: datetime):
        if attempt.submitted:
            raise AttemptAlreadySubmitted()
        if is_expired(self._deadline(attempt, exam), now):
            raise AttemptExpired()

    def _clean_selection(self, question: Question, selected_choice_ids: List[int]) -> List[int]:
        selected = sorted(set(selected_choice_ids or []))
        if question.question_type == QuestionTypeEnum.SINGLE_CHOICE and len(selected) > 1:
            raise ValidationFailed("Single-choice questions accept at most one choice.")

        valid_ids = {choice.id for choice in question.choices}
        unknown = [choice_id for choice_id in selected if choice_id not in valid_ids]
        if unknown:
            raise ValidationFailed(
                "Selected choices do not belong to this question.",
                details={"choiceIds": unknown}
            )
        return selected

    def start_attempt(self, db: Session, exam_id: int, current_user_context: UserContext,
                      now: Optional[datetime] = None) -> ExamAttempt:
        if not current_user_context.is_student:
            raise Forbidden("Only students can start exam attempts.")

        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise NotFound("Exam not found.")
        if not exam.published:
            raise ExamNotPublished()
        if not exam.questions:
            raise ValidationFailed("Exam has no questions.")

        student_id = current_user_context.user_id
        max_attempts = exam.max_attempts
        used = crud_exam_attempt.count_by_student_and_exam(db, student_id=student_id, exam_id=exam_id)
        if used >= max_attempts:
            raise AttemptLimitExceeded(details={"maxAttempts": max_attempts, "attemptsUsed": used})

        attempt = ExamAttempt(
            exam_id=exam_id,
            student_id=student_id,
            attempt_number=used + 1,
            start_time=now or utcnow(),
            submitted=False
        )
        db.add(attempt)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent start took the same attempt number first.
            db.rollback()
            logger.info(f"Concurrent attempt start lost for exam {exam_id}, student {student_id}")
            raise AttemptLimitExceeded(
                "Another attempt was started for this exam at the same time.",
                details={"maxAttempts": max_attempts, "attemptsUsed": used + 1}
            )

        db.refresh(attempt)
        logger.info(f"Attempt {attempt.id} (#{attempt.attempt_number}) started on exam {exam_id} by student {student_id}")
        return attempt

    def _write_answer(self, db: Session, attempt_id: int, question_id: int, current_user_context: UserContext,
                      apply: Callable[[StudentAnswer, Question], None], now: Optional[datetime]) -> StudentAnswer:
        # The answer row is upserted: if a concurrent writer inserted it between our
        # read and our insert, the second pass updates that row instead.
        for upsert_pass in range(2):
            attempt = self._get_attempt(db, attempt_id, lock=True)
            self._require_owner(current_user_context, attempt)
            self._require_in_progress(attempt, attempt.exam, now or utcnow())

            question = crud_question.get(db, id=question_id)
            if not question or question.exam_id != attempt.exam_id:
                raise ValidationFailed("Question does not belong to this exam attempt.")

            answer = crud_student_answer.get_by_attempt_and_question(
                db, attempt_id=attempt_id, question_id=question_id
            )
            if answer:
                apply(answer, question)
            else:
                answer = StudentAnswer(
                    attempt_id=attempt_id, question_id=question_id, selected_choice_ids=[], flagged=False
                )
                apply(answer, question)
                db.add(answer)

            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                if upsert_pass:
                    raise
                continue

            db.refresh(answer)
            return answer

    def record_answer(self, db: Session, attempt_id: int, question_id: int, selected_choice_ids: List[int],
                      current_user_context: UserContext, now: Optional[datetime] = None) -> StudentAnswer:
        """Replace the stored selection for one question; an empty list clears it."""
        def apply(answer: StudentAnswer, question: Question):
            answer.selected_choice_ids = self._clean_selection(question, selected_choice_ids)

        return self._write_answer(db, attempt_id, question_id, current_user_context, apply, now)

    def set_flag(self, db: Session, attempt_id: int, question_id: int, flagged: bool,
                 current_user_context: UserContext, now: Optional[datetime] = None) -> StudentAnswer:
        def apply(answer: StudentAnswer, question: Question):
            answer.flagged = bool(flagged)

        return self._write_answer(db, attempt_id, question_id, current_user_context, apply, now)

    def submit_attempt(self, db: Session, attempt_id: int, current_user_context: UserContext,
                       trigger: SubmitTriggerEnum = SubmitTriggerEnum.MANUAL,
                       now: Optional[datetime] = None) -> AttemptResult:
        attempt = self._get_attempt(db, attempt_id, lock=True)
        self._require_owner(current_user_context, attempt)
        if attempt.submitted:
            raise AttemptAlreadySubmitted()

        exam = attempt.exam
        now = now or utcnow()
        deadline = self._deadline(attempt, exam)
        expired = is_expired(deadline, now)

        questions = crud_question.get_by_exam(db, exam_id=exam.id)
        answers = crud_student_answer.get_all_by_attempt(db, attempt_id=attempt.id)

        if trigger == SubmitTriggerEnum.MANUAL and not expired:
            answered = {answer.question_id for answer in answers if answer.selected_choice_ids}
            unanswered = [question.id for question in questions if question.id not in answered]
            if unanswered:
                raise ValidationFailed(
                    "All questions must be answered before submitting.",
                    details={"unansweredQuestionIds": unanswered}
                )

        end_time = deadline if expired else now
        self._finalize(db, attempt, answers, questions, end_time)
        logger.info(f"Attempt {attempt_id} submitted ({trigger.value}) with score {attempt.score}")
        return score_attempt(attempt, answers, questions)

    def _finalize(self, db: Session, attempt: ExamAttempt, answers: List[StudentAnswer],
                  questions: List[Question], end_time: datetime):
        score, _ = grade(answers, questions)
        won = crud_exam_attempt.mark_submitted(db, attempt_id=attempt.id, end_time=end_time, score=score)
        if not won:
            db.rollback()
            raise AttemptAlreadySubmitted()
        db.commit()
        db.refresh(attempt)

    def finalize_if_expired(self, db: Session, attempt: ExamAttempt, now: Optional[datetime] = None) -> Tuple[ExamAttempt, bool]:
        """Submit an unsubmitted attempt whose deadline has passed, ending it at the deadline.

        Returns the (refreshed) attempt and whether this call finalized it.
        """
        if attempt.submitted:
            return attempt, False
        deadline = self._deadline(attempt, attempt.exam)
        if not is_expired(deadline, now or utcnow()):
            return attempt, False

        questions = crud_question.get_by_exam(db, exam_id=attempt.exam_id)
        answers = crud_student_answer.get_all_by_attempt(db, attempt_id=attempt.id)
        try:
            self._finalize(db, attempt, answers, questions, deadline)
        except AttemptAlreadySubmitted:
            attempt = self._get_attempt(db, attempt.id)
            return attempt, False
        logger.info(f"Attempt {attempt.id} auto-submitted at deadline {deadline.isoformat()}")
        return attempt, True

    async def _finalize_on_read(self, db: Session, attempt: ExamAttempt, now: Optional[datetime]) -> ExamAttempt:
        attempt, finalized = self.finalize_if_expired(db, attempt, now)
        if finalized:
            await report_service.invalidate_exam_report(attempt.exam_id)
        return attempt

    async def get_attempt_details(self, db: Session, attempt_id: int, current_user_context: UserContext,
                                  now: Optional[datetime] = None) -> ExamAttemptDetails:
        now = now or utcnow()
        attempt = self._get_attempt(db, attempt_id)
        self._require_owner(current_user_context, attempt, allow_admin=True)
        attempt = await self._finalize_on_read(db, attempt, now)

        exam = attempt.exam
        questions = crud_question.get_by_exam(db, exam_id=exam.id)
        answers = crud_student_answer.get_all_by_attempt(db, attempt_id=attempt.id)
        deadline = self._deadline(attempt, exam)

        remaining_seconds = None
        if deadline is not None:
            remaining_seconds = 0 if attempt.submitted else max(int((deadline - now).total_seconds()), 0)

        return ExamAttemptDetails(
            attempt=ExamAttemptSchema.model_validate(attempt),
            exam=AttemptExam.model_validate(exam),
            questions=[StudentQuestion.model_validate(question) for question in questions],
            answers=[AttemptAnswer.model_validate(answer) for answer in answers],
            deadline=deadline,
            remaining_seconds=remaining_seconds
        )

    async def get_result(self, db: Session, attempt_id: int, current_user_context: UserContext,
                         now: Optional[datetime] = None) -> AttemptResult:
        attempt = self._get_attempt(db, attempt_id)
        self._require_owner(current_user_context, attempt, allow_admin=True)
        attempt = await self._finalize_on_read(db, attempt, now)
        if not attempt.submitted:
            raise AttemptNotSubmitted()

        questions = crud_question.get_by_exam(db, exam_id=attempt.exam_id)
        answers = crud_student_answer.get_all_by_attempt(db, attempt_id=attempt.id)
        return score_attempt(attempt, answers, questions)

    def list_results(self, db: Session, current_user_context: UserContext,
                     skip: int = 0, limit: int = 100) -> List[StudentResultSummary]:
        attempts = crud_exam_attempt.get_submitted_by_student(
            db, student_id=current_user_context.user_id, skip=skip, limit=limit
        )
        return [
            StudentResultSummary(
                attempt_id=attempt.id,
                exam_id=attempt.exam_id,
                exam_title=attempt.exam.title,
                attempt_number=attempt.attempt_number,
                score=attempt.score or 0.0,
                start_time=as_utc(attempt.start_time),
                end_time=as_utc(attempt.end_time)
            )
            for attempt in attempts
        ]


exam_attempt_service = ExamAttemptService()
