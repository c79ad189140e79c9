from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from portal.schemas.base import CamelModel

Role = Literal["collaborator", "admin"]


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(CamelModel):
    username: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)
    profile: Role = "collaborator"
    address: Optional[str] = None
    phone: Optional[str] = None


class AuthUser(CamelModel):
    user_id: str
    name: str
    email: str
    profile: Role


class LoginResponse(CamelModel):
    success: bool
    user: AuthUser


class RegisterResponse(CamelModel):
    success: bool
    user: AuthUser


class LogoutResponse(BaseModel):
    message: str


class AuthTokenPayload(BaseModel):
    sub: str  # user id
    role: Optional[str] = None
    exp: Optional[datetime] = None
