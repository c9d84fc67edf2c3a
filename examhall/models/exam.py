from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from examhall.core.database import Base
from examhall.core.constants import DEFAULT_MAX_ATTEMPTS, DEFAULT_DURATION_MINUTES, DEFAULT_QUESTIONS_PER_PAGE

class Exam(Base):
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, index=True, nullable=False)
    description = Column(String, nullable=True)
    published = Column(Boolean, nullable=False, default=False)
    max_attempts = Column(Integer, nullable=False, default=DEFAULT_MAX_ATTEMPTS)
    duration_minutes = Column(Integer, nullable=False, default=DEFAULT_DURATION_MINUTES) # 0 means no time limit
    questions_per_page = Column(Integer, nullable=False, default=DEFAULT_QUESTIONS_PER_PAGE)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    questions = relationship(
        "Question", back_populates="exam", cascade="all, delete-orphan",
        order_by="Question.id"
    )
    attempts = relationship("ExamAttempt", back_populates="exam", cascade="all, delete-orphan")

    @property
    def question_count(self) -> int:
        return len(self.questions)
