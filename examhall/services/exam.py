import logging
from typing import List
from sqlalchemy.orm import Session

from examhall.core.exceptions import NotFound, ValidationFailed
from examhall.crud.exam import exam as crud_exam
from examhall.crud.question import question as crud_question
from examhall.models.choice import Choice
from examhall.models.exam import Exam
from examhall.models.question import Question
from examhall.schemas.exam import Exam as ExamSchema, ExamCreate, ExamUpdate
from examhall.schemas.question import ChoiceIn, Question as QuestionSchema, QuestionCreate, QuestionUpdate
from examhall.schemas.user import UserContext
from examhall.services.publish_gate import PublishCheckResult, can_publish
from examhall.services.question_validator import validate_question

logger = logging.getLogger(__name__)


class ExamService:

    def _require_exam(self, db: Session, exam_id: int) -> Exam:
        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise NotFound("Exam not found.")
        return exam

    def _require_question(self, db: Session, question_id: int) -> Question:
        question = crud_question.get(db, id=question_id)
        if not question:
            raise NotFound("Question not found.")
        return question

    def _validated_choices(self, text: str, question_type, choices: List[ChoiceIn]) -> List[ChoiceIn]:
        result = validate_question(text, question_type, choices)
        if not result.ok:
            raise ValidationFailed("Question is invalid.", details={"reasons": result.reasons})
        return result.choices

    def create_exam(self, db: Session, exam_in: ExamCreate, current_user_context: UserContext) -> Exam:
        data = exam_in.model_dump()
        data.update(published=False, created_by=current_user_context.user_id)
        new_exam = crud_exam.create(db, obj_in=data)
        logger.info(f"Exam {new_exam.id} created by user {current_user_context.user_id}")
        return new_exam

    def get_exam(self, db: Session, exam_id: int) -> Exam:
        return self._require_exam(db, exam_id)

    def get_all_exams(self, db: Session, skip: int = 0, limit: int = 100) -> List[Exam]:
        return crud_exam.get_multi(db, skip=skip, limit=limit)

    def get_published_exams(self, db: Session, skip: int = 0, limit: int = 100) -> List[Exam]:
        return crud_exam.get_published(db, skip=skip, limit=limit)

    def update_exam(self, db: Session, exam_id: int, exam_in: ExamUpdate) -> Exam:
        exam = self._require_exam(db, exam_id)
        update_data = exam_in.model_dump(exclude_unset=True)

        if update_data.get("published") and not exam.published:
            raise ValidationFailed("Use the publish endpoint to publish an exam.")
        for field in ("title", "max_attempts", "duration_minutes", "questions_per_page", "published"):
            if field in update_data and update_data[field] is None:
                update_data.pop(field)

        if update_data.get("published") is False and exam.published:
            logger.info(f"Exam {exam_id} unpublished")
        return crud_exam.update(db, db_obj=exam, obj_in=update_data)

    def delete_exam(self, db: Session, exam_id: int) -> ExamSchema:
        exam = self._require_exam(db, exam_id)
        snapshot = ExamSchema.model_validate(exam)
        crud_exam.delete(db, id=exam.id)
        logger.info(f"Exam {exam_id} deleted")
        return snapshot

    def check_publish(self, db: Session, exam_id: int) -> PublishCheckResult:
        exam = self._require_exam(db, exam_id)
        return can_publish(exam, crud_question.get_by_exam(db, exam_id=exam_id))

    def publish_exam(self, db: Session, exam_id: int) -> Exam:
        exam = self._require_exam(db, exam_id)
        check = can_publish(exam, crud_question.get_by_exam(db, exam_id=exam_id))
        if not check.ok:
            logger.info(f"Exam {exam_id} publish refused: {check.reasons}")
            raise ValidationFailed("Exam cannot be published.", details={"reasons": check.reasons})

        published = crud_exam.update(db, db_obj=exam, obj_in={"published": True})
        logger.info(f"Exam {exam_id} published")
        return published

    def unpublish_exam(self, db: Session, exam_id: int) -> Exam:
        exam = self._require_exam(db, exam_id)
        unpublished = crud_exam.update(db, db_obj=exam, obj_in={"published": False})
        logger.info(f"Exam {exam_id} unpublished")
        return unpublished

    def get_exam_questions(self, db: Session, exam_id: int) -> List[Question]:
        self._require_exam(db, exam_id)
        return crud_question.get_by_exam(db, exam_id=exam_id)

    def get_question(self, db: Session, question_id: int) -> Question:
        return self._require_question(db, question_id)

    def build_question(self, exam_id: int, question_in: QuestionCreate) -> Question:
        """Validated, unsaved question with its choices."""
        choices = self._validated_choices(question_in.text, question_in.question_type, question_in.choices)
        return Question(
            exam_id=exam_id,
            text=question_in.text.strip(),
            question_type=question_in.question_type,
            choices=[Choice(text=c.text, is_correct=c.is_correct, order=c.order) for c in choices]
        )

    def create_question(self, db: Session, exam_id: int, question_in: QuestionCreate) -> Question:
        self._require_exam(db, exam_id)
        question = self.build_question(exam_id, question_in)
        db.add(question)
        db.commit()
        db.refresh(question)
        logger.info(f"Question {question.id} added to exam {exam_id}")
        return question

    def update_question(self, db: Session, question_id: int, question_in: QuestionUpdate) -> Question:
        """Update text, type and choices of a question.

        Choices that carry the id of an existing choice are edited in place so
        answers already recorded against them stay meaningful; choices without
        an id are created and existing choices left out are removed.
        """
        question = self._require_question(db, question_id)
        update_data = question_in.model_dump(exclude_unset=True)

        text = question_in.text if update_data.get("text") is not None else question.text
        question_type = question_in.question_type or question.question_type
        if question_in.choices is not None:
            choices_in = question_in.choices
        else:
            choices_in = [
                ChoiceIn(id=c.id, text=c.text, is_correct=c.is_correct, order=c.order)
                for c in question.choices
            ]

        existing = {choice.id: choice for choice in question.choices}
        unknown = [c.id for c in choices_in if c.id is not None and c.id not in existing]
        if unknown:
            raise ValidationFailed("Choices do not belong to this question.", details={"choiceIds": unknown})
        given_ids = [c.id for c in choices_in if c.id is not None]
        dupes = sorted({choice_id for choice_id in given_ids if given_ids.count(choice_id) > 1})
        if dupes:
            raise ValidationFailed("Each existing choice may appear only once.", details={"choiceIds": dupes})

        choices = self._validated_choices(text, question_type, choices_in)

        question.text = text.strip()
        question.question_type = question_type
        kept_ids = set()
        for choice_in in choices:
            if choice_in.id is not None:
                choice = existing[choice_in.id]
                choice.text = choice_in.text
                choice.is_correct = choice_in.is_correct
                choice.order = choice_in.order
                kept_ids.add(choice.id)
            else:
                question.choices.append(
                    Choice(text=choice_in.text, is_correct=choice_in.is_correct, order=choice_in.order)
                )
        for choice_id, choice in existing.items():
            if choice_id not in kept_ids:
                question.choices.remove(choice)

        db.add(question)
        db.commit()
        db.refresh(question)
        logger.info(f"Question {question_id} updated")
        return question

    def delete_question(self, db: Session, question_id: int) -> QuestionSchema:
        question = self._require_question(db, question_id)
        exam = self._require_exam(db, question.exam_id)
        if exam.published and len(crud_question.get_by_exam(db, exam_id=exam.id)) <= 1:
            logger.warning(f"Refused to delete the last question {question_id} of published exam {exam.id}")
            raise ValidationFailed(
                "A published exam must keep at least one question. Unpublish it first.",
                details={"examId": exam.id}
            )
        snapshot = QuestionSchema.model_validate(question)
        crud_question.delete(db, id=question.id)
        logger.info(f"Question {question_id} deleted from exam {snapshot.exam_id}")
        return snapshot


exam_service = ExamService()
