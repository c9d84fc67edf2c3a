from pydantic import BaseModel, field_validator

from examhall.core.constants import RoleEnum


class TokenPayload(BaseModel):
    sub: int
    role: RoleEnum
    exp: int | None = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v
