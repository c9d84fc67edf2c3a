from pydantic import Field, field_validator
from typing import Optional, List
from datetime import datetime

from examhall.core.constants import DEFAULT_MAX_ATTEMPTS, DEFAULT_DURATION_MINUTES, DEFAULT_QUESTIONS_PER_PAGE
from examhall.schemas.base import CamelModel


def _clean_title(v):
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Title cannot be empty")
    return v


class ExamBase(CamelModel):
    title: str
    description: Optional[str] = None
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    duration_minutes: int = Field(default=DEFAULT_DURATION_MINUTES, ge=0)
    questions_per_page: int = Field(default=DEFAULT_QUESTIONS_PER_PAGE, ge=1)

class ExamCreate(ExamBase):

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v):
        return _clean_title(v)

class ExamUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    max_attempts: Optional[int] = Field(default=None, ge=1)
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    questions_per_page: Optional[int] = Field(default=None, ge=1)
    published: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v):
        return _clean_title(v)

class Exam(ExamBase):
    id: int
    published: bool
    created_by: Optional[int] = None
    question_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class PublishedExam(CamelModel):
    """Exam card shown to students."""
    id: int
    title: str
    description: Optional[str] = None
    duration_minutes: int
    max_attempts: int
    questions_per_page: int
    question_count: int = 0

class PublishCheck(CamelModel):
    ok: bool
    reasons: List[str] = []
