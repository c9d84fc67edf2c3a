from pydantic import Field
from typing import List

from examhall.core.constants import QuestionTypeEnum
from examhall.schemas.base import CamelModel


class ChoiceCount(CamelModel):
    choice_id: int
    text: str
    count: int
    is_correct: bool
    order: int

class QuestionReport(CamelModel):
    question_id: int
    text: str
    question_type: QuestionTypeEnum = Field(alias="type")
    answers_total: int = 0
    correct_total: int = 0
    choice_counts: List[ChoiceCount] = []

class ScoreBucket(CamelModel):
    lower: int
    upper: int
    count: int = 0

class ExamReport(CamelModel):
    exam_id: int
    attempts_total: int = 0
    submitted_total: int = 0
    average_score: float = 0.0
    min_score: float = 0.0
    max_score: float = 0.0
    questions_total: int = 0
    answers_total: int = 0
    correct_total: int = 0
    score_distribution: List[ScoreBucket] = []
    questions: List[QuestionReport] = []
