from enum import Enum

class RoleEnum(str, Enum):
    ADMIN = "admin"
    STUDENT = "student"

class QuestionTypeEnum(str, Enum):
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"

class SubmitTriggerEnum(str, Enum):
    MANUAL = "manual"
    TIMER = "timer"


DEFAULT_MAX_ATTEMPTS = 1
DEFAULT_DURATION_MINUTES = 30
DEFAULT_QUESTIONS_PER_PAGE = 5
MIN_CHOICES_PER_QUESTION = 2

REPORT_CACHE_PREFIX = "exam:report"
