from pydantic import BaseModel

from examhall.core.constants import RoleEnum


class UserContext(BaseModel):
    """Caller identity resolved from the bearer token."""
    user_id: int
    role: RoleEnum

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.ADMIN

    @property
    def is_student(self) -> bool:
        return self.role == RoleEnum.STUDENT
