from pydantic import BaseModel, EmailStr
from typing import Optional, Literal

from app.models.enums.access_type import AccessType


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthTokens(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"


class LoginUser(BaseModel):
    id: int
    username: str
    role: str
    access_type: AccessType
    department: Optional[str]
    company: Optional[str]


class LoginResponse(BaseModel):
    auth: AuthTokens
    user: LoginUser
