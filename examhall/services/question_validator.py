"""
Question model validation and the correctness-editing rules used by the
question editor.

Every function here is pure: it takes a list of choices and returns a new,
corrected list inside a ``ValidationResult``; nothing is persisted.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from examhall.core.config import settings
from examhall.core.constants import QuestionTypeEnum, MIN_CHOICES_PER_QUESTION
from examhall.schemas.question import ChoiceIn


@dataclass
class ValidationResult:
    ok: bool
    reasons: List[str] = field(default_factory=list)
    choices: List[ChoiceIn] = field(default_factory=list)


def _copy(choices: List[ChoiceIn]) -> List[ChoiceIn]:
    return [choice.model_copy() for choice in choices]


def correct_count(choices: List[ChoiceIn]) -> int:
    return sum(1 for choice in choices if choice.is_correct)


def enforce_single_choice(choices: List[ChoiceIn]) -> List[ChoiceIn]:
    """Keep the first correct choice (or the first choice) as the only correct one."""
    if not choices:
        return []
    keep = next((i for i, choice in enumerate(choices) if choice.is_correct), 0)
    return [choice.model_copy(update={"is_correct": i == keep}) for i, choice in enumerate(choices)]


def assign_orders(choices: List[ChoiceIn]) -> List[ChoiceIn]:
    return [
        choice.model_copy(update={"order": choice.order if choice.order else i + 1})
        for i, choice in enumerate(choices)
    ]


def validate_question(text: str, question_type: QuestionTypeEnum, choices: List[ChoiceIn],
                      max_choices: Optional[int] = None) -> ValidationResult:
    max_choices = max_choices or settings.MAX_CHOICES_PER_QUESTION
    reasons = []

    if not (text or "").strip():
        reasons.append("Question text is required.")
    if len(choices) < MIN_CHOICES_PER_QUESTION:
        reasons.append(f"A question needs at least {MIN_CHOICES_PER_QUESTION} choices.")
    if len(choices) > max_choices:
        reasons.append(f"A question can have at most {max_choices} choices.")
    for i, choice in enumerate(choices):
        if not choice.text.strip():
            reasons.append(f"Choice {i + 1} text is required.")

    cleaned = assign_orders([choice.model_copy(update={"text": choice.text.strip()}) for choice in choices])
    if question_type == QuestionTypeEnum.SINGLE_CHOICE:
        cleaned = enforce_single_choice(cleaned)
    elif correct_count(cleaned) == 0:
        reasons.append("A multi-choice question needs at least one correct choice.")

    if reasons:
        return ValidationResult(ok=False, reasons=reasons, choices=_copy(choices))
    return ValidationResult(ok=True, choices=cleaned)


def toggle_correct(question_type: QuestionTypeEnum, choices: List[ChoiceIn], index: int,
                   is_correct: Optional[bool] = None) -> ValidationResult:
    """Apply one click on a choice's "correct" box.

    Single-choice selects the clicked choice exclusively. Multi-choice flips the
    box (or sets it to ``is_correct``) but refuses to clear the last correct one.
    """
    if not 0 <= index < len(choices):
        return ValidationResult(ok=False, reasons=[f"No choice at position {index + 1}."], choices=_copy(choices))

    if question_type == QuestionTypeEnum.SINGLE_CHOICE:
        return ValidationResult(
            ok=True,
            choices=[choice.model_copy(update={"is_correct": i == index}) for i, choice in enumerate(choices)]
        )

    will_be_correct = (not choices[index].is_correct) if is_correct is None else is_correct
    if not will_be_correct and choices[index].is_correct and correct_count(choices) == 1:
        return ValidationResult(
            ok=False,
            reasons=["A multi-choice question needs at least one correct choice."],
            choices=_copy(choices)
        )

    updated = _copy(choices)
    updated[index] = updated[index].model_copy(update={"is_correct": will_be_correct})
    return ValidationResult(ok=True, choices=updated)


def remove_choice(question_type: QuestionTypeEnum, choices: List[ChoiceIn], index: int) -> ValidationResult:
    if not 0 <= index < len(choices):
        return ValidationResult(ok=False, reasons=[f"No choice at position {index + 1}."], choices=_copy(choices))
    if len(choices) <= MIN_CHOICES_PER_QUESTION:
        return ValidationResult(
            ok=False,
            reasons=[f"A question needs at least {MIN_CHOICES_PER_QUESTION} choices."],
            choices=_copy(choices)
        )

    remaining = [choice.model_copy() for i, choice in enumerate(choices) if i != index]
    if question_type == QuestionTypeEnum.SINGLE_CHOICE:
        return ValidationResult(ok=True, choices=enforce_single_choice(remaining))
    if correct_count(remaining) == 0:
        return ValidationResult(
            ok=False,
            reasons=["Cannot remove the last correct choice."],
            choices=_copy(choices)
        )
    return ValidationResult(ok=True, choices=remaining)


def change_type(choices: List[ChoiceIn], new_type: QuestionTypeEnum) -> ValidationResult:
    if new_type == QuestionTypeEnum.SINGLE_CHOICE:
        return ValidationResult(ok=True, choices=enforce_single_choice(choices))
    if correct_count(choices) == 0:
        return ValidationResult(
            ok=False,
            reasons=["A multi-choice question needs at least one correct choice."],
            choices=_copy(choices)
        )
    return ValidationResult(ok=True, choices=_copy(choices))
