from typing import List
from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from examhall.schemas.response import APIResponse
from examhall.utils import deps
from examhall.schemas.exam import Exam, ExamCreate, ExamUpdate, PublishCheck, PublishedExam
from examhall.schemas.exam_attempt import AttemptStarted
from examhall.schemas.question import Question, QuestionCreate, QuestionImportResult
from examhall.schemas.report import ExamReport
from examhall.schemas.user import UserContext
from examhall.services.exam import exam_service
from examhall.services.exam_attempt import exam_attempt_service
from examhall.services.question_import import question_import_service
from examhall.services.report import report_service
from examhall.utils.clock import as_utc, attempt_deadline

router = APIRouter()


@router.post("/", response_model=APIResponse[Exam], status_code=status.HTTP_201_CREATED)
async def create_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_in: ExamCreate,
    context: UserContext = Depends(deps.require_admin)
):
    new_exam = exam_service.create_exam(db, exam_in=exam_in, current_user_context=context)
    return APIResponse(message="Exam created successfully", data=Exam.model_validate(new_exam))


@router.get("/", response_model=APIResponse[List[Exam]])
async def get_all_exams(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.require_admin),
    skip: int = 0,
    limit: int = 100
):
    exams = exam_service.get_all_exams(db, skip=skip, limit=limit)
    return APIResponse(message="Exams retrieved successfully", data=[Exam.model_validate(e) for e in exams])


@router.get("/published", response_model=APIResponse[List[PublishedExam]])
async def get_published_exams(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.require_student),
    skip: int = 0,
    limit: int = 100
):
    exams = exam_service.get_published_exams(db, skip=skip, limit=limit)
    return APIResponse(message="Published exams retrieved successfully", data=[PublishedExam.model_validate(e) for e in exams])


@router.get("/{exam_id}", response_model=APIResponse[Exam])
async def get_exam(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.require_admin)
):
    exam = exam_service.get_exam(db, exam_id=exam_id)
    return APIResponse(message="Exam retrieved successfully", data=Exam.model_validate(exam))


@router.put("/{exam_id}", response_model=APIResponse[Exam])
async def update_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    exam_in: ExamUpdate,
    context: UserContext = Depends(deps.require_admin)
):
    updated_exam = exam_service.update_exam(db, exam_id=exam_id, exam_in=exam_in)
    await report_service.invalidate_exam_report(exam_id)
    return APIResponse(message="Exam updated successfully", data=Exam.model_validate(updated_exam))


@router.delete("/{exam_id}", response_model=APIResponse[Exam])
async def delete_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    context: UserContext = Depends(deps.require_admin)
):
    deleted_exam = exam_service.delete_exam(db, exam_id=exam_id)
    await report_service.invalidate_exam_report(exam_id)
    return APIResponse(message="Exam deleted successfully", data=deleted_exam)


@router.get("/{exam_id}/publish-check", response_model=APIResponse[PublishCheck])
async def check_publish(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.require_admin)
):
    check = exam_service.check_publish(db, exam_id=exam_id)
    return APIResponse(message="Publish check completed", data=PublishCheck(ok=check.ok, reasons=check.reasons))


@router.post("/{exam_id}/publish", response_model=APIResponse[Exam])
async def publish_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    context: UserContext = Depends(deps.require_admin)
):
    exam = exam_service.publish_exam(db, exam_id=exam_id)
    await report_service.invalidate_exam_report(exam_id)
    return APIResponse(message="Exam published successfully", data=Exam.model_validate(exam))


@router.post("/{exam_id}/unpublish", response_model=APIResponse[Exam])
async def unpublish_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    context: UserContext = Depends(deps.require_admin)
):
    exam = exam_service.unpublish_exam(db, exam_id=exam_id)
    await report_service.invalidate_exam_report(exam_id)
    return APIResponse(message="Exam unpublished successfully", data=Exam.model_validate(exam))


@router.get("/{exam_id}/questions", response_model=APIResponse[List[Question]])
async def get_exam_questions(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.require_admin)
):
    questions = exam_service.get_exam_questions(db, exam_id=exam_id)
    return APIResponse(message="Exam questions retrieved successfully", data=[Question.model_validate(q) for q in questions])


@router.post("/{exam_id}/questions", response_model=APIResponse[Question], status_code=status.HTTP_201_CREATED)
async def create_question(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    question_in: QuestionCreate,
    context: UserContext = Depends(deps.require_admin)
):
    question = exam_service.create_question(db, exam_id=exam_id, question_in=question_in)
    await report_service.invalidate_exam_report(exam_id)
    return APIResponse(message="Question created successfully", data=Question.model_validate(question))


@router.post("/{exam_id}/questions/import", response_model=APIResponse[QuestionImportResult], status_code=status.HTTP_201_CREATED)
async def import_questions(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    file: UploadFile = File(...),
    context: UserContext = Depends(deps.require_admin)
):
    content = await file.read()
    questions = question_import_service.import_questions(db, exam_id=exam_id, content=content, filename=file.filename)
    await report_service.invalidate_exam_report(exam_id)
    return APIResponse(
        message="Questions imported successfully",
        data=QuestionImportResult(
            created_questions=len(questions),
            questions=[Question.model_validate(q) for q in questions]
        )
    )


@router.get("/{exam_id}/report", response_model=APIResponse[ExamReport])
async def get_exam_report(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.require_admin)
):
    report = await report_service.get_exam_report(db, exam_id=exam_id)
    return APIResponse(message="Exam report retrieved successfully", data=report)


@router.post("/{exam_id}/start", response_model=APIResponse[AttemptStarted], status_code=status.HTTP_201_CREATED)
async def start_exam_attempt(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    context: UserContext = Depends(deps.require_student)
):
    attempt = exam_attempt_service.start_attempt(db, exam_id=exam_id, current_user_context=context)
    await report_service.invalidate_exam_report(exam_id)
    return APIResponse(
        message="Exam attempt started successfully",
        data=AttemptStarted(
            attempt_id=attempt.id,
            exam_id=attempt.exam_id,
            attempt_number=attempt.attempt_number,
            start_time=as_utc(attempt.start_time),
            deadline=attempt_deadline(attempt.start_time, attempt.exam.duration_minutes)
        )
    )
