from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import ValidationError

from examhall.core.config import settings
from examhall.core.constants import RoleEnum
from examhall.core.database import SessionLocal
from examhall.core.exceptions import Forbidden, NotAuthenticated
from examhall.schemas.token import TokenPayload
from examhall.schemas.user import UserContext

http_bearer = HTTPBearer(auto_error=False)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_transactional_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

def decode_access_token(token: str) -> TokenPayload:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return TokenPayload(**payload)
    except JWTError:
        raise NotAuthenticated("Could not validate credentials.")
    except ValidationError:
        raise NotAuthenticated("Invalid token payload.")

def get_current_user_with_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer)
) -> UserContext:
    if credentials is None or not credentials.credentials:
        raise NotAuthenticated("Not authenticated.")
    token_data = decode_access_token(credentials.credentials)
    return UserContext(user_id=token_data.sub, role=token_data.role)

def require_role(*roles: RoleEnum):
    """Dependency that checks the caller holds one of ``roles``."""
    def _verify_role(context: UserContext = Depends(get_current_user_with_context)) -> UserContext:
        if context.role not in roles:
            raise Forbidden("You do not have permission to perform this action.")
        return context
    return _verify_role

require_admin = require_role(RoleEnum.ADMIN)
require_student = require_role(RoleEnum.STUDENT)
require_any_user = require_role(RoleEnum.ADMIN, RoleEnum.STUDENT)
