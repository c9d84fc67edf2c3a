from sqlalchemy.orm import Session
from typing import List, Optional

from examhall.crud.base import CRUDBase
from examhall.models.exam_attempt import ExamAttempt
from examhall.models.student_answer import StudentAnswer
from examhall.schemas.exam_attempt import AttemptAnswer

class CRUDStudentAnswer(CRUDBase[StudentAnswer, AttemptAnswer, AttemptAnswer]):

    def get_by_attempt_and_question(self, db: Session, attempt_id: int,
                                    question_id: int) -> Optional[StudentAnswer]:
        return (
            db.query(StudentAnswer)
            .filter(StudentAnswer.attempt_id == attempt_id)
            .filter(StudentAnswer.question_id == question_id)
            .first()
        )

    def get_all_by_attempt(self, db: Session, attempt_id: int) -> List[StudentAnswer]:
        return (
            db.query(StudentAnswer)
            .filter(StudentAnswer.attempt_id == attempt_id)
            .order_by(StudentAnswer.question_id)
            .all()
        )

    def get_submitted_by_exam(self, db: Session, exam_id: int) -> List[StudentAnswer]:
        return (
            db.query(StudentAnswer)
            .join(ExamAttempt, StudentAnswer.attempt_id == ExamAttempt.id)
            .filter(ExamAttempt.exam_id == exam_id)
            .filter(ExamAttempt.submitted == True)
            .all()
        )


student_answer = CRUDStudentAnswer(StudentAnswer)
