"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime


def ok(data: Any = None, message: Optional[str] = None, count: Optional[int] = None) -> dict:
    """Build the ``{success, message?, data?, count?}`` envelope every route returns."""
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if count is not None:
        body["count"] = count
    return body


def fail(message: str) -> dict:
    return {"success": False, "message": message}


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: Optional[str] = Field(None, alias="mobile")
    password: str
    confirm_password: str = Field(..., alias="confirmPassword")

    class Config:
        populate_by_name = True

class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., min_length=1)

class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., alias="newPassword")

    class Config:
        populate_by_name = True

class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., alias="currentPassword")
    new_password: str = Field(..., alias="newPassword")

    class Config:
        populate_by_name = True


# ---- User ----
class UserOut(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    profile_image: Optional[str] = None
    role_id: int
    role_name: Optional[str] = None
    user_type: str
    is_active: bool = True
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = Field(None, alias="mobile")
    profile_image: Optional[str] = None

    class Config:
        populate_by_name = True

class AdminUserUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = Field(None, alias="mobile")

    class Config:
        populate_by_name = True

class RoleChangeRequest(BaseModel):
    role_id: int = Field(..., alias="role")

    class Config:
        populate_by_name = True

class StatusChangeRequest(BaseModel):
    is_active: bool


# ---- Roles & permissions ----
class PermissionGrant(BaseModel):
    permission_key: str
    has_access: bool = True

    class Config:
        from_attributes = True

class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: bool = True
    permissions: List[PermissionGrant] = []

class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    permissions: Optional[List[PermissionGrant]] = None

class RoleOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    is_system_role: bool
    permissions: List[PermissionGrant] = []
    user_count: int = 0

class PermissionOut(BaseModel):
    id: int
    permission_key: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


# ---- Activities ----
class ActivityCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    organization_name: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    max_participants: Optional[int] = Field(None, ge=1)
    # Accepted for compatibility and ignored: visibility follows the creator's role
    is_public: Optional[bool] = None
    participant_ids: Optional[List[int]] = None

class ActivityUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    organization_name: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    max_participants: Optional[int] = Field(None, ge=1)
    is_public: Optional[bool] = None
    participant_ids: Optional[List[int]] = None

class ParticipantOut(BaseModel):
    id: int
    activity_id: int
    user_id: int
    status: str
    joined_at: Optional[datetime] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None

class ParticipantAdd(BaseModel):
    user_id: int
    status: Optional[str] = None

class ParticipantStatusUpdate(BaseModel):
    status: str

class ActivityOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    organization_name: Optional[str] = None
    location: Optional[str] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    created_by: int
    creator_name: Optional[str] = None
    is_public: bool
    is_active: bool
    max_participants: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    status: str = "upcoming"
    progress: int = 0
    participant_count: int = 0
    is_joined: bool = False
    has_tasks: bool = False
    task_hours: int = 0
    task_count: int = 0
    completed_task_count: int = 0
    participants: Optional[List[ParticipantOut]] = None

    class Config:
        from_attributes = True


# ---- Tasks ----
class TaskCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[str] = None
    due_date: Optional[str] = None
    total_hours: Optional[int] = Field(None, ge=0)
    status: Optional[str] = None
    completed: Optional[bool] = None

class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[str] = None
    due_date: Optional[str] = None
    total_hours: Optional[int] = Field(None, ge=0)
    status: Optional[str] = None
    completed: Optional[bool] = None

class AssignmentOut(BaseModel):
    id: int
    task_id: int
    user_id: int
    status: str
    assigned_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None

class AssignmentCreate(BaseModel):
    user_id: int
    status: Optional[str] = None

class AssignmentStatusUpdate(BaseModel):
    status: str

class TaskOut(BaseModel):
    id: int
    activity_id: int
    title: str
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    total_hours: Optional[int] = None
    status: str
    completed: bool
    created_by: int
    creator_name: Optional[str] = None
    creator_is_admin: bool = False
    assigned_users: List[AssignmentOut] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Set on "my tasks" listings only
    task_type: Optional[str] = None
    activity_title: Optional[str] = None


# ---- Chat ----
class ChatRequest(BaseModel):
    message: Optional[str] = None
    conversation_history: List[Dict[str, Any]] = Field(default_factory=list, alias="conversationHistory")
    model: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0, le=2)
    max_tokens: Optional[int] = Field(None, ge=1, alias="maxTokens")

    class Config:
        populate_by_name = True
