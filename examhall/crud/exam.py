from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from examhall.crud.base import CRUDBase
from examhall.models.exam import Exam
from examhall.models.question import Question
from examhall.schemas.exam import ExamCreate, ExamUpdate

class CRUDExam(CRUDBase[Exam, ExamCreate, ExamUpdate]):

    def _query_with_relationships(self, db: Session):
        return db.query(Exam).options(
            selectinload(Exam.questions).selectinload(Question.choices)
        )

    def get(self, db: Session, id: int) -> Optional[Exam]:
        return self._query_with_relationships(db).filter(Exam.id == id).first()

    def get_multi(self, db: Session, skip: int = 0, limit: int = 100) -> List[Exam]:
        return (
            self._query_with_relationships(db)
            .order_by(Exam.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_published(self, db: Session, skip: int = 0, limit: int = 100) -> List[Exam]:
        return (
            self._query_with_relationships(db)
            .filter(Exam.published == True)
            .order_by(Exam.id)
            .offset(skip)
            .limit(limit)
            .all()
        )


exam = CRUDExam(Exam)
