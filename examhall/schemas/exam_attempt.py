from pydantic import Field
from typing import Optional, List

from examhall.core.constants import SubmitTriggerEnum
from examhall.schemas.base import CamelModel, UTCDateTime
from examhall.schemas.question import StudentQuestion


class ExamAttempt(CamelModel):
    id: int
    exam_id: int
    student_id: int
    attempt_number: int
    start_time: UTCDateTime
    end_time: Optional[UTCDateTime] = None
    submitted: bool
    score: Optional[float] = None

class AttemptStarted(CamelModel):
    attempt_id: int
    exam_id: int
    attempt_number: int
    start_time: UTCDateTime
    deadline: Optional[UTCDateTime] = None

class AttemptAnswer(CamelModel):
    question_id: int
    selected_choice_ids: List[int] = []
    flagged: bool = False

class AttemptExam(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    duration_minutes: int
    questions_per_page: int

class ExamAttemptDetails(CamelModel):
    attempt: ExamAttempt
    exam: AttemptExam
    questions: List[StudentQuestion] = []
    answers: List[AttemptAnswer] = []
    deadline: Optional[UTCDateTime] = None
    remaining_seconds: Optional[int] = None

class AnswerIn(CamelModel):
    question_id: int
    selected_choice_ids: List[int] = []

class FlagIn(CamelModel):
    question_id: int
    flagged: bool = True

class SubmitIn(CamelModel):
    trigger: SubmitTriggerEnum = Field(default=SubmitTriggerEnum.MANUAL)
