from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from examhall.core.database import Base
from examhall.core.constants import QuestionTypeEnum
from examhall.models.choice import Choice

class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(String, nullable=False)
    question_type = Column(Enum(QuestionTypeEnum), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    exam = relationship("Exam", back_populates="questions")
    choices = relationship(
        "Choice", back_populates="question", cascade="all, delete-orphan",
        order_by=[Choice.order, Choice.id]
    )
    answers = relationship("StudentAnswer", back_populates="question", cascade="all, delete-orphan")

    @property
    def correct_choice_ids(self) -> set:
        return {choice.id for choice in self.choices if choice.is_correct}
