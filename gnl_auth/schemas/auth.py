from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from gnl_auth.models.user import MembershipLevel, TrustLevel, UserRole


class RegisterRequest(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(min_length=1, max_length=128)
    full_name: str = Field(default="", max_length=100)
    accept_terms: bool = False
    device_info: str | None = Field(default=None, max_length=500)
    remember_me: bool = False

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    device_info: str | None = Field(default=None, max_length=500)
    remember_me: bool = False

class TwoFactorLoginRequest(BaseModel):
    challenge_token: str
    code: str | None = Field(default=None, max_length=6)
    backup_code: str | None = Field(default=None, max_length=16)

class RefreshRequest(BaseModel):
    refresh_token: str
    device_info: str | None = Field(default=None, max_length=500)

class LogoutRequest(BaseModel):
    refresh_token: str | None = None

class EmailRequest(BaseModel):
    email: EmailStr

class TokenRequest(BaseModel):
    token: str = Field(min_length=1)

class PasswordResetConfirmRequest(BaseModel):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=1, max_length=128)

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str
    full_name: str
    display_name: str | None = None
    profile_image: str | None = None
    bio: str | None = None
    role: UserRole
    trust_level: TrustLevel
    membership_level: MembershipLevel
    points_balance: int
    is_verified: bool
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime

class TokenOut(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    session_id: str | None = None
