from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from gnl_auth.models.user import TrustLevel


class DeleteAccountRequest(BaseModel):
    password: str = Field(min_length=1)

class EditProfileRequest(BaseModel):
    full_name: str | None = Field(default=None, max_length=100)
    display_name: str | None = Field(default=None, max_length=100)
    bio: str | None = Field(default=None, max_length=2000)
    profile_image: str | None = Field(default=None, max_length=500)

class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=128)
    confirm_password: str = Field(..., min_length=1, max_length=128)

class PrivacySettingsIn(BaseModel):
    profile_visibility: str | None = None
    activity_visibility: str | None = None
    contact_info_visibility: str | None = None
    search_visibility: bool | None = None

class PrivacySettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    profile_visibility: str
    activity_visibility: str
    contact_info_visibility: str
    search_visibility: bool

class PublicProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    full_name: str
    display_name: str | None = None
    profile_image: str | None = None
    bio: str | None = None
    trust_level: TrustLevel

# two-factor

class TwoFactorCodeRequest(BaseModel):
    code: str = Field(min_length=6, max_length=6)

class TwoFactorDisableRequest(BaseModel):
    code: str = Field(min_length=6, max_length=6)
    password: str = Field(min_length=1)

class BackupCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=16)

# sessions

class SessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    device_class: str
    device_info: str | None = None
    last_ip: str | None = None
    last_activity: datetime
    created_at: datetime
    expires_at: datetime
    is_active: bool

class RevokeSessionRequest(BaseModel):
    session_id: str = Field(min_length=1)
