from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from examhall.schemas.response import APIResponse
from examhall.utils import deps
from examhall.schemas.exam_attempt import AnswerIn, AttemptAnswer, ExamAttemptDetails, FlagIn, SubmitIn
from examhall.schemas.result import AttemptResult, StudentResultSummary
from examhall.schemas.user import UserContext
from examhall.services.exam_attempt import exam_attempt_service
from examhall.services.report import report_service

router = APIRouter()


@router.get("/mine", response_model=APIResponse[List[StudentResultSummary]])
async def get_my_results(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.require_student),
    skip: int = 0,
    limit: int = 100
):
    results = exam_attempt_service.list_results(db, current_user_context=context, skip=skip, limit=limit)
    return APIResponse(message="Exam results retrieved successfully", data=results)


@router.get("/{attempt_id}", response_model=APIResponse[ExamAttemptDetails])
async def get_attempt_details(
    *,
    db: Session = Depends(deps.get_transactional_db),
    attempt_id: int,
    context: UserContext = Depends(deps.require_any_user)
):
    details = await exam_attempt_service.get_attempt_details(db, attempt_id=attempt_id, current_user_context=context)
    return APIResponse(message="Exam attempt retrieved successfully", data=details)


@router.post("/{attempt_id}/answer", response_model=APIResponse[AttemptAnswer])
async def record_answer(
    *,
    db: Session = Depends(deps.get_transactional_db),
    attempt_id: int,
    answer_in: AnswerIn,
    context: UserContext = Depends(deps.require_student)
):
    answer = exam_attempt_service.record_answer(
        db,
        attempt_id=attempt_id,
        question_id=answer_in.question_id,
        selected_choice_ids=answer_in.selected_choice_ids,
        current_user_context=context
    )
    return APIResponse(message="Answer saved successfully", data=AttemptAnswer.model_validate(answer))


@router.post("/{attempt_id}/flag", response_model=APIResponse[AttemptAnswer])
async def flag_question(
    *,
    db: Session = Depends(deps.get_transactional_db),
    attempt_id: int,
    flag_in: FlagIn,
    context: UserContext = Depends(deps.require_student)
):
    answer = exam_attempt_service.set_flag(
        db,
        attempt_id=attempt_id,
        question_id=flag_in.question_id,
        flagged=flag_in.flagged,
        current_user_context=context
    )
    return APIResponse(message="Question flag updated successfully", data=AttemptAnswer.model_validate(answer))


@router.post("/{attempt_id}/submit", response_model=APIResponse[AttemptResult])
async def submit_attempt(
    *,
    db: Session = Depends(deps.get_transactional_db),
    attempt_id: int,
    submit_in: SubmitIn = SubmitIn(),
    context: UserContext = Depends(deps.require_student)
):
    result = exam_attempt_service.submit_attempt(
        db, attempt_id=attempt_id, current_user_context=context, trigger=submit_in.trigger
    )
    await report_service.invalidate_exam_report(result.exam_id)
    return APIResponse(message="Exam attempt submitted successfully", data=result)


@router.get("/{attempt_id}/result", response_model=APIResponse[AttemptResult])
async def get_attempt_result(
    *,
    db: Session = Depends(deps.get_transactional_db),
    attempt_id: int,
    context: UserContext = Depends(deps.require_any_user)
):
    result = await exam_attempt_service.get_result(db, attempt_id=attempt_id, current_user_context=context)
    return APIResponse(message="Exam result retrieved successfully", data=result)
