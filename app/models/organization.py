from datetime import datetime
from typing import Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from app.db.schema import OrgType


class OrganizationCreate(SQLModel):
    name: str = Field(min_length=2, max_length=150, description="Display name")
    type: OrgType = Field(description="FARMER, MANUFACTURER, LABS or DISTRIBUTOR")
    description: Optional[str] = Field(default=None, max_length=1000)
    registration_number: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=255)
    website: Optional[str] = Field(default=None, max_length=255)


class OrganizationUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=150)
    description: Optional[str] = Field(default=None, max_length=1000)
    registration_number: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=255)
    website: Optional[str] = Field(default=None, max_length=255)
    is_active: Optional[bool] = None


class OrganizationRead(SQLModel):
    id: UUID
    name: str
    type: OrgType
    description: Optional[str] = None
    registration_number: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    is_active: bool
    created_at: datetime
    user_count: Optional[int] = None
