from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "Examhall"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # Tokens are issued by the identity service; this service only verifies them.
    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./examhall.db"
    TEST_DATABASE_URL: Optional[str] = None
    DATABASE_ECHO: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Cache
    CACHE_ENABLED: bool = True
    REDIS_URL: Optional[str] = None
    CACHE_TTL: int = 300
    REPORT_CACHE_TTL: int = 600

    # Question authoring and CSV import limits
    MAX_CHOICES_PER_QUESTION: int = 10
    CSV_IMPORT_MAX_BYTES: int = 5 * 1024 * 1024  # 5MB
    CSV_IMPORT_MAX_ROWS: int = 1000
    CSV_IMPORT_MAX_QUESTIONS: int = 500

    class Config:
        env_file = ".env"

settings = Settings()
