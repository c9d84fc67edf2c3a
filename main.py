from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from examhall.core.config import settings
from examhall.core.database import Base, engine
from examhall.core.exceptions import ExamServiceError
from examhall.core.logging import configure_logging
from examhall.endpoints import attempt, exam, question
from examhall.middleware.exceptions import (
    exam_service_exception_handler, global_exception_handler, http_exception_handler, validation_exception_handler
)
from examhall.middleware.logging import RequestLoggingMiddleware
import examhall.models  # noqa: F401

configure_logging()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(ExamServiceError, exam_service_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(exam.router, prefix="/exams", tags=["Exams"])
app.include_router(question.router, prefix="/questions", tags=["Questions"])
app.include_router(attempt.router, prefix="/attempts", tags=["Attempts"])


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "ok", "version": settings.VERSION}


@app.on_event("startup")
async def startup_event():
    # Postgres schemas are managed by alembic; a local SQLite file is created on the fly.
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
