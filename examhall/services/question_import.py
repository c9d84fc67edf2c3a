"""
Bulk question import from CSV.

Accepted layout, with an optional header row::

    text,type,choices,correct
    "2+2?",single_choice,"2|3|4|5","4"

``choices`` is pipe-separated. ``correct`` lists the correct choices by text
(case and whitespace are ignored) separated by ``|``; a token that
matches no choice text but is a number within range is read as a 1-based
position. The import is all or nothing: one bad row rejects the whole file.
"""
import io
import logging
from typing import Dict, List, Optional, Tuple

import pandas as pd
from sqlalchemy.orm import Session

from examhall.core.config import settings
from examhall.core.constants import QuestionTypeEnum, MIN_CHOICES_PER_QUESTION
from examhall.core.exceptions import ImportParseError, NotFound, ValidationFailed
from examhall.crud.exam import exam as crud_exam
from examhall.models.question import Question
from examhall.schemas.question import ChoiceIn, QuestionCreate
from examhall.services.exam import exam_service

logger = logging.getLogger(__name__)

COLUMN_ALIASES = {
    "text": {"text", "question", "question_text", "questiontext"},
    "type": {"type", "question_type", "questiontype"},
    "choices": {"choices", "options"},
    "correct": {"correct", "correct_indices", "correctindices", "answer", "answers"},
}

TYPE_ALIASES = {
    "single": QuestionTypeEnum.SINGLE_CHOICE,
    "singlechoice": QuestionTypeEnum.SINGLE_CHOICE,
    "single_choice": QuestionTypeEnum.SINGLE_CHOICE,
    "single-choice": QuestionTypeEnum.SINGLE_CHOICE,
    "sc": QuestionTypeEnum.SINGLE_CHOICE,
    "multi": QuestionTypeEnum.MULTI_CHOICE,
    "multiple": QuestionTypeEnum.MULTI_CHOICE,
    "multichoice": QuestionTypeEnum.MULTI_CHOICE,
    "multi_choice": QuestionTypeEnum.MULTI_CHOICE,
    "multi-choice": QuestionTypeEnum.MULTI_CHOICE,
    "mc": QuestionTypeEnum.MULTI_CHOICE,
}

POSITIONAL_COLUMNS = {"text": 0, "type": 1, "choices": 2, "correct": 3}


def _normalize(value: str) -> str:
    return " ".join(value.split()).casefold()


def split_pipe_list(value: str) -> List[str]:
    return [part.strip() for part in value.split("|") if part.strip()]


def normalize_question_type(value: str) -> Optional[QuestionTypeEnum]:
    return TYPE_ALIASES.get(value.strip().lower())


def looks_like_header(record: List[str]) -> bool:
    known = [cell for cell in record if any(cell.strip().lower() in aliases for aliases in COLUMN_ALIASES.values())]
    return len(known) >= 2


def resolve_columns(header: List[str]) -> Optional[Dict[str, int]]:
    columns = {}
    for position, raw in enumerate(header):
        key = raw.strip().lower()
        for column, aliases in COLUMN_ALIASES.items():
            if key in aliases:
                columns[column] = position
    if set(columns) != set(COLUMN_ALIASES):
        return None
    return columns


def parse_correct(value: str, choices: List[str]) -> List[int]:
    """Zero-based positions of the correct choices named in ``value``."""
    tokens = split_pipe_list(value)
    by_text = {_normalize(choice): position for position, choice in enumerate(choices)}
    positions = []
    for token in tokens:
        position = by_text.get(_normalize(token))
        if position is None and token.isdigit() and 1 <= int(token) <= len(choices):
            position = int(token) - 1
        if position is None:
            raise ValueError(f"correct value not found in choices: {token}")
        if position not in positions:
            positions.append(position)
    return positions


class QuestionImportService:

    def read_records(self, content: bytes) -> List[List[str]]:
        if len(content) > settings.CSV_IMPORT_MAX_BYTES:
            raise ImportParseError(f"File is too large (max {settings.CSV_IMPORT_MAX_BYTES} bytes).")
        if not content.strip():
            raise ImportParseError("CSV is empty.")

        try:
            df = pd.read_csv(
                io.BytesIO(content),
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                encoding="utf-8-sig",
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise ImportParseError(f"Invalid CSV: {e}")

        df = df.fillna("")
        if len(df) > settings.CSV_IMPORT_MAX_ROWS:
            raise ImportParseError(f"Too many rows (max {settings.CSV_IMPORT_MAX_ROWS}).")
        return [[str(cell) for cell in row] for row in df.itertuples(index=False, name=None)]

    def parse_row(self, row_number: int, record: List[str], columns: Dict[str, int]) -> Optional[QuestionCreate]:
        def get(column: str) -> str:
            position = columns[column]
            return record[position].strip() if position < len(record) else ""

        text, type_raw, choices_raw, correct_raw = get("text"), get("type"), get("choices"), get("correct")
        if not (text or type_raw or choices_raw or correct_raw):
            return None

        def fail(message: str):
            raise ImportParseError(f"row {row_number}: {message}", details={"row": row_number})

        if not text:
            fail("text is required")

        question_type = normalize_question_type(type_raw)
        if question_type is None:
            fail(f"invalid question type '{type_raw}'")

        choices = split_pipe_list(choices_raw)
        if len(choices) < MIN_CHOICES_PER_QUESTION:
            fail(f"at least {MIN_CHOICES_PER_QUESTION} choices are required")
        if len(choices) > settings.MAX_CHOICES_PER_QUESTION:
            fail(f"too many choices (max {settings.MAX_CHOICES_PER_QUESTION})")

        seen = set()
        for choice in choices:
            key = _normalize(choice)
            if key in seen:
                fail(f"duplicate choice text '{choice}'")
            seen.add(key)

        try:
            correct = parse_correct(correct_raw, choices)
        except ValueError as e:
            fail(f"invalid correct value(s): {e}")
        if not correct:
            fail("at least 1 correct choice is required")
        if question_type == QuestionTypeEnum.SINGLE_CHOICE and len(correct) != 1:
            fail("single_choice must have exactly 1 correct choice")

        return QuestionCreate(
            text=text,
            question_type=question_type,
            choices=[
                ChoiceIn(text=choice, is_correct=position in correct, order=position + 1)
                for position, choice in enumerate(choices)
            ]
        )

    def parse_csv(self, content: bytes) -> List[Tuple[int, QuestionCreate]]:
        records = self.read_records(content)

        columns = dict(POSITIONAL_COLUMNS)
        start = 0
        if looks_like_header(records[0]):
            resolved = resolve_columns(records[0])
            if resolved is None:
                raise ImportParseError(
                    "row 1: header must name the text, type, choices and correct columns",
                    details={"row": 1}
                )
            columns = resolved
            start = 1

        parsed = []
        for index in range(start, len(records)):
            question_in = self.parse_row(index + 1, records[index], columns)
            if question_in is None:
                continue
            parsed.append((index + 1, question_in))
            if len(parsed) > settings.CSV_IMPORT_MAX_QUESTIONS:
                raise ImportParseError(f"Too many questions (max {settings.CSV_IMPORT_MAX_QUESTIONS}).")

        if not parsed:
            raise ImportParseError("No questions found.")
        return parsed

    def import_questions(self, db: Session, exam_id: int, content: bytes,
                         filename: Optional[str] = None) -> List[Question]:
        if not crud_exam.get(db, id=exam_id):
            raise NotFound("Exam not found.")
        if filename and "." in filename and not filename.lower().endswith(".csv"):
            raise ImportParseError("File must be a .csv")

        questions = []
        for row_number, question_in in self.parse_csv(content):
            try:
                questions.append(exam_service.build_question(exam_id, question_in))
            except ValidationFailed as e:
                reasons = "; ".join((e.details or {}).get("reasons", [])) or e.message
                raise ImportParseError(f"row {row_number}: {reasons}", details={"row": row_number})

        try:
            db.add_all(questions)
            db.commit()
        except Exception:
            db.rollback()
            raise
        for question in questions:
            db.refresh(question)

        logger.info(f"Imported {len(questions)} questions into exam {exam_id}")
        return questions


question_import_service = QuestionImportService()
