from pydantic import Field, field_validator
from typing import Optional, List

from examhall.core.constants import QuestionTypeEnum
from examhall.schemas.base import CamelModel


class ChoiceIn(CamelModel):
    id: Optional[int] = None
    text: str
    is_correct: bool = False
    order: int = 0

    @field_validator("text")
    @classmethod
    def strip_text(cls, v):
        return v.strip()

class Choice(CamelModel):
    id: int
    text: str
    is_correct: bool
    order: int

class StudentChoice(CamelModel):
    """Choice as shown during an attempt; correctness stays hidden."""
    id: int
    text: str
    order: int

class QuestionCreate(CamelModel):
    text: str
    question_type: QuestionTypeEnum = Field(alias="type")
    choices: List[ChoiceIn] = []

    @field_validator("text")
    @classmethod
    def strip_text(cls, v):
        return v.strip()

class QuestionUpdate(CamelModel):
    text: Optional[str] = None
    question_type: Optional[QuestionTypeEnum] = Field(default=None, alias="type")
    choices: Optional[List[ChoiceIn]] = None

    @field_validator("text")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if v is not None else v

class Question(CamelModel):
    id: int
    exam_id: int
    text: str
    question_type: QuestionTypeEnum = Field(alias="type")
    choices: List[Choice] = []

class StudentQuestion(CamelModel):
    id: int
    text: str
    question_type: QuestionTypeEnum = Field(alias="type")
    choices: List[StudentChoice] = []

class QuestionImportResult(CamelModel):
    created_questions: int
    questions: List[Question] = []
