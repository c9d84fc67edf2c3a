import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ.setdefault("SECRET_KEY", "examhall-test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_examhall.db")
os.environ["CACHE_ENABLED"] = "true"
os.environ.pop("REDIS_URL", None)

import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from jose import jwt
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
from examhall.core.cache import cache
from examhall.core.config import settings
from examhall.core.constants import RoleEnum
from examhall.core.database import Base, create_db_engine, get_db
from examhall.schemas.user import UserContext
from examhall.utils import deps as deps_utils
import examhall.models  # noqa: F401
import main

test_db_url = settings.TEST_DATABASE_URL or settings.DATABASE_URL

ADMIN_ID = 1
STUDENT_ID = 101
OTHER_STUDENT_ID = 102


@pytest.fixture(scope="session")
def database_engine():
    engine = create_db_engine(test_db_url)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if test_db_url.startswith("sqlite:///./"):
        path = test_db_url.replace("sqlite:///./", "./")
        if os.path.exists(path):
            os.remove(path)


@pytest.fixture(scope="function")
def session_factory(database_engine):
    Base.metadata.drop_all(bind=database_engine)
    Base.metadata.create_all(bind=database_engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=database_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


def _clear_cache():
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(cache.clear())
    finally:
        loop.close()


@pytest.fixture(autouse=True)
def clear_cache():
    _clear_cache()
    yield
    _clear_cache()


@pytest.fixture(scope="function")
def client(db_session):
    main.app.dependency_overrides[get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_transactional_db] = lambda: db_session
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


@pytest.fixture
def token_for():
    def _token_for(user_id: int, role: str, expires_in: timedelta = timedelta(hours=1)) -> str:
        payload = {
            "sub": str(user_id),
            "role": role,
            "exp": datetime.now(timezone.utc) + expires_in,
        }
        return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return _token_for


@pytest.fixture
def admin_headers(token_for):
    return {"Authorization": f"Bearer {token_for(ADMIN_ID, 'admin')}"}


@pytest.fixture
def student_headers(token_for):
    return {"Authorization": f"Bearer {token_for(STUDENT_ID, 'student')}"}


@pytest.fixture
def other_student_headers(token_for):
    return {"Authorization": f"Bearer {token_for(OTHER_STUDENT_ID, 'student')}"}


@pytest.fixture
def admin_context():
    return UserContext(user_id=ADMIN_ID, role=RoleEnum.ADMIN)


@pytest.fixture
def student_context():
    return UserContext(user_id=STUDENT_ID, role=RoleEnum.STUDENT)


@pytest.fixture
def other_student_context():
    return UserContext(user_id=OTHER_STUDENT_ID, role=RoleEnum.STUDENT)
