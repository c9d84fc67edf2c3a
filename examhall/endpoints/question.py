from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from examhall.schemas.response import APIResponse
from examhall.utils import deps
from examhall.schemas.question import Question, QuestionUpdate
from examhall.schemas.user import UserContext
from examhall.services.exam import exam_service
from examhall.services.report import report_service

router = APIRouter()


@router.get("/{question_id}", response_model=APIResponse[Question])
async def get_question(
    *,
    db: Session = Depends(deps.get_db),
    question_id: int,
    context: UserContext = Depends(deps.require_admin)
):
    question = exam_service.get_question(db, question_id=question_id)
    return APIResponse(message="Question retrieved successfully", data=Question.model_validate(question))


@router.put("/{question_id}", response_model=APIResponse[Question])
async def update_question(
    *,
    db: Session = Depends(deps.get_transactional_db),
    question_id: int,
    question_in: QuestionUpdate,
    context: UserContext = Depends(deps.require_admin)
):
    question = exam_service.update_question(db, question_id=question_id, question_in=question_in)
    await report_service.invalidate_exam_report(question.exam_id)
    return APIResponse(message="Question updated successfully", data=Question.model_validate(question))


@router.delete("/{question_id}", response_model=APIResponse[Question])
async def delete_question(
    *,
    db: Session = Depends(deps.get_transactional_db),
    question_id: int,
    context: UserContext = Depends(deps.require_admin)
):
    deleted = exam_service.delete_question(db, question_id=question_id)
    await report_service.invalidate_exam_report(deleted.exam_id)
    return APIResponse(message="Question deleted successfully", data=deleted)
