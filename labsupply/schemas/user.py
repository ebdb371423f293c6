from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional, List, Literal
from datetime import datetime

# Shared properties for admin models
class AdminBase(BaseModel):
    email: EmailStr

# Schema for authentication credentials (admins and merchants)
class LoginRequest(BaseModel):
    email: EmailStr
    password: str

# Schema for a super admin adding a team member
class AdminCreate(AdminBase):
    password: str = Field(min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None

# Output schema for admin profile details
class AdminResponse(AdminBase):
    id: int
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

# Paginated admin list
class AdminPage(BaseModel):
    items: List[AdminResponse]
    total: int
    page: int
    page_size: int

# Activate or deactivate a team member
class AdminUpdate(BaseModel):
    is_active: Optional[bool] = None

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

# Schema for JWT payload contents
class TokenData(BaseModel):
    email: Optional[str] = None
    scope: Optional[Literal["admin", "merchant"]] = None
