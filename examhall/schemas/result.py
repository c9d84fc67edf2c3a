from pydantic import Field
from typing import Optional, List

from examhall.core.constants import QuestionTypeEnum
from examhall.schemas.base import CamelModel, UTCDateTime


class QuestionResult(CamelModel):
    question_id: int
    text: str
    question_type: QuestionTypeEnum = Field(alias="type")
    selected_choice_ids: List[int] = []
    correct_choice_ids: List[int] = []
    is_correct: bool
    flagged: bool = False

class AttemptResult(CamelModel):
    attempt_id: int
    exam_id: int
    score: float
    correct_total: int
    questions_total: int
    start_time: Optional[UTCDateTime] = None
    end_time: Optional[UTCDateTime] = None
    questions: List[QuestionResult] = []

class StudentResultSummary(CamelModel):
    attempt_id: int
    exam_id: int
    exam_title: str
    attempt_number: int
    score: float
    start_time: UTCDateTime
    end_time: Optional[UTCDateTime] = None
