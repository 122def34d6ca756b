from datetime import datetime

from pydantic import EmailStr, Field

from packtrack.models.user import UserRole
from packtrack.schemas.common import CamelModel


class UserOut(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    role: UserRole
    assigned_site_id: str | None = None
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime | None = None


class UserResponse(CamelModel):
    user: UserOut


# ── Register ─────────────────────────────────────────────────

class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = None
    role: UserRole = UserRole.READONLY
    assigned_site_id: str | None = None


# ── Login ────────────────────────────────────────────────────

class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class TokenResponse(CamelModel):
    token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserOut


class RefreshRequest(CamelModel):
    refresh_token: str


class AccessTokenResponse(CamelModel):
    token: str
    token_type: str = "bearer"


# ── Password ─────────────────────────────────────────────────

class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class RegisterResponse(CamelModel):
    user: UserOut
    token: str
    refresh_token: str
