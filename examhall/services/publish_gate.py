from dataclasses import dataclass, field
from typing import List, Sequence

from examhall.core.constants import QuestionTypeEnum, MIN_CHOICES_PER_QUESTION
from examhall.models.exam import Exam
from examhall.models.question import Question


@dataclass
class PublishCheckResult:
    ok: bool
    reasons: List[str] = field(default_factory=list)


def can_publish(exam: Exam, questions: Sequence[Question]) -> PublishCheckResult:
    """Decide whether ``exam`` may be published with the given questions.

    Every offending question contributes its own reason so the editor can
    point at all of them at once.
    """
    reasons = []
    if not (exam.title or "").strip():
        reasons.append("Exam title is required.")
    if not questions:
        reasons.append("Cannot publish an exam with no questions.")

    for position, question in enumerate(questions, start=1):
        label = f"Question {position}"
        total = len(question.choices)
        correct = sum(1 for choice in question.choices if choice.is_correct)

        if total < MIN_CHOICES_PER_QUESTION:
            reasons.append(f"{label} must have at least {MIN_CHOICES_PER_QUESTION} choices.")
        if question.question_type == QuestionTypeEnum.SINGLE_CHOICE:
            if correct != 1:
                reasons.append(f"{label} is single choice and must have exactly 1 correct choice.")
        elif correct == 0:
            reasons.append(f"{label} must have at least 1 correct choice.")

    return PublishCheckResult(ok=not reasons, reasons=reasons)
