"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

SLUG_PATTERN = r"^(\*|[a-z0-9][a-z0-9_.-]*)$"


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=4)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Optional[Dict[str, Any]] = None

class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1)


# ---- Permission ----
class PermissionCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1, max_length=100, pattern=SLUG_PATTERN)
    group: Optional[str] = None
    description: Optional[str] = None

class PermissionUpdate(BaseModel):
    name: Optional[str] = None
    group: Optional[str] = None
    description: Optional[str] = None

class PermissionOut(BaseModel):
    id: int
    name: str
    slug: str
    group: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Role ----
class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1, max_length=100, pattern=SLUG_PATTERN)
    level: int = 0
    is_default: bool = False
    description: Optional[str] = None
    permissions: List[str] = []

class RoleUpdate(BaseModel):
    name: Optional[str] = None
    level: Optional[int] = None
    is_default: Optional[bool] = None
    description: Optional[str] = None

class RoleOut(BaseModel):
    id: int
    name: str
    slug: str
    level: int
    is_default: bool
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RoleDetailOut(RoleOut):
    permissions: List[PermissionOut] = []


# ---- Grants ----
class SlugList(BaseModel):
    """Body of the sync endpoints: the complete desired set of slugs."""
    slugs: List[str] = []

class SyncResult(BaseModel):
    attached: List[int] = []
    detached: List[int] = []


# ---- User ----
class UserOut(BaseModel):
    id: int
    email: str
    full_name: str
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserAccessOut(UserOut):
    """A user together with everything they are allowed to do."""
    roles: List[str] = []
    permissions: List[str] = []
    is_super_admin: bool = False

class AbilityCheckOut(BaseModel):
    ability: str
    allowed: bool


# ---- Settings ----
class SettingUpdate(BaseModel):
    value: Any = None
    is_public: Optional[bool] = None
    description: Optional[str] = None

class SettingOut(BaseModel):
    group: str
    key: str
    value: Any = None


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    actor_id: Optional[int] = None
    actor_email: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    old_value_json: Optional[str] = None
    new_value_json: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
