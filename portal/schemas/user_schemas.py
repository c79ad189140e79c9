from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from portal.schemas.auth_schemas import Role
from portal.schemas.base import CamelModel


class User(BaseModel):
    """The authenticated caller, resolved from the session cookie for each request."""
    id: int
    username: str
    email: str
    role: Role


class UserResponse(CamelModel):
    id: int
    username: str
    user_mail: str
    user_profile: Role
    created_at: Optional[str] = None


class AdminUpdateUserRequest(CamelModel):
    username: str = Field(min_length=1)
    email: EmailStr
    profile: Role
    password: Optional[str] = None


class AdminUserResponse(CamelModel):
    success: bool
    message: str
    user: Optional[UserResponse] = None


class LoginRecordResponse(CamelModel):
    id: int
    login_at: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class UserLoginsResponse(CamelModel):
    success: bool
    logins: list[LoginRecordResponse]
    total_logins: int


class ConsecutiveDaysResponse(CamelModel):
    success: bool
    consecutive_days: int
    total_logins: int
    login_dates: list[str]
