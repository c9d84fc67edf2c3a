from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from examhall.crud.base import CRUDBase
from examhall.models.question import Question
from examhall.schemas.question import QuestionCreate, QuestionUpdate

class CRUDQuestion(CRUDBase[Question, QuestionCreate, QuestionUpdate]):

    def _query_with_relationships(self, db: Session):
        return db.query(Question).options(selectinload(Question.choices))

    def get(self, db: Session, id: int) -> Optional[Question]:
        return self._query_with_relationships(db).filter(Question.id == id).first()

    def get_by_exam(self, db: Session, exam_id: int) -> List[Question]:
        return (
            self._query_with_relationships(db)
            .filter(Question.exam_id == exam_id)
            .order_by(Question.id)
            .all()
        )

    def count_by_exam(self, db: Session, exam_id: int) -> int:
        return db.query(Question).filter(Question.exam_id == exam_id).count()


question = CRUDQuestion(Question)
