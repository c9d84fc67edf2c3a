from datetime import datetime
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from examhall.crud.base import CRUDBase
from examhall.models.exam_attempt import ExamAttempt
from examhall.schemas.exam_attempt import ExamAttempt as ExamAttemptSchema

class CRUDExamAttempt(CRUDBase[ExamAttempt, ExamAttemptSchema, ExamAttemptSchema]):

    def _query_with_relationships(self, db: Session):
        return db.query(ExamAttempt).options(
            selectinload(ExamAttempt.exam),
            selectinload(ExamAttempt.answers)
        )

    def get(self, db: Session, id: int) -> Optional[ExamAttempt]:
        return self._query_with_relationships(db).filter(ExamAttempt.id == id).first()

    def get_for_update(self, db: Session, id: int) -> Optional[ExamAttempt]:
        """Row-locks the attempt for the rest of the transaction."""
        return (
            db.query(ExamAttempt)
            .filter(ExamAttempt.id == id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def count_by_student_and_exam(self, db: Session, student_id: int, exam_id: int) -> int:
        return (
            db.query(func.count(ExamAttempt.id))
            .filter(ExamAttempt.student_id == student_id)
            .filter(ExamAttempt.exam_id == exam_id)
            .scalar()
        ) or 0

    def get_all_by_exam(self, db: Session, exam_id: int) -> List[ExamAttempt]:
        return (
            db.query(ExamAttempt)
            .filter(ExamAttempt.exam_id == exam_id)
            .order_by(ExamAttempt.id)
            .all()
        )

    def get_submitted_by_student(self, db: Session, student_id: int, skip: int = 0, limit: int = 100) -> List[ExamAttempt]:
        return (
            self._query_with_relationships(db)
            .filter(ExamAttempt.student_id == student_id)
            .filter(ExamAttempt.submitted == True)
            .order_by(ExamAttempt.end_time.desc(), ExamAttempt.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def mark_submitted(self, db: Session, attempt_id: int, end_time: datetime, score: float) -> bool:
        """Flips ``submitted`` only if nobody else did; True means this caller won."""
        updated = (
            db.query(ExamAttempt)
            .filter(ExamAttempt.id == attempt_id)
            .filter(ExamAttempt.submitted == False)
            .update(
                {"submitted": True, "end_time": end_time, "score": score},
                synchronize_session=False
            )
        )
        return updated == 1


exam_attempt = CRUDExamAttempt(ExamAttempt)
