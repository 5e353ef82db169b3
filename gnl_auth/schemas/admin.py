from datetime import datetime

from pydantic import BaseModel, ConfigDict

from gnl_auth.models.admin_log import AdminAction
from gnl_auth.models.user import UserRole


class SetRoleRequest(BaseModel):
    role: UserRole

class AdminLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    actor_id: int
    target_user_id: int | None = None
    action: AdminAction
    target_ref: str | None = None
    detail: str | None = None
    created_at: datetime
