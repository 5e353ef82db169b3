from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CheckAccessRequest(BaseModel):
    content_type: str = Field(min_length=1, max_length=50)
    content_id: int

class ContentAccessIn(BaseModel):
    content_type: str = Field(min_length=1, max_length=50)
    content_id: int
    visibility: str
    min_points_required: int = Field(default=0, ge=0)
    is_premium: bool = False

class ContentAccessOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    content_type: str
    content_id: int
    visibility: str
    min_points_required: int
    is_premium: bool

class RuleCreate(BaseModel):
    content_type: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    applies_to: str = "all"
    visibility: str = "public"
    min_points_required: int = Field(default=0, ge=0)
    min_trust_level: str | None = None
    is_premium_only: bool = False
    is_moderator_only: bool = False
    is_admin_only: bool = False
    is_active: bool = True
    priority: int = 0

class RuleUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    applies_to: str | None = None
    visibility: str | None = None
    min_points_required: int | None = Field(default=None, ge=0)
    min_trust_level: str | None = None
    is_premium_only: bool | None = None
    is_moderator_only: bool | None = None
    is_admin_only: bool | None = None
    is_active: bool | None = None
    priority: int | None = None

class RuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    content_type: str
    name: str
    description: str | None = None
    applies_to: str
    visibility: str
    min_points_required: int
    min_trust_level: str | None = None
    is_premium_only: bool
    is_moderator_only: bool
    is_admin_only: bool
    is_active: bool
    priority: int
    created_by: int | None = None

class PermissionGrantIn(BaseModel):
    user_id: int
    content_type: str = Field(min_length=1, max_length=50)
    content_id: int
    can_view: bool = True
    can_comment: bool = False
    can_edit: bool = False
    expires_at: datetime | None = None

class PermissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    content_type: str
    content_id: int
    can_view: bool
    can_comment: bool
    can_edit: bool
    granted_by: int | None = None
    expires_at: datetime | None = None
