from datetime import datetime
from typing import Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from pydantic import EmailStr, StringConstraints
from typing_extensions import Annotated
from app.db.schema import OrgType, UserRole


class UserRead(SQLModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole
    org_type: OrgType
    organization_id: UUID
    is_active: bool
    is_verified: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class UserSignin(SQLModel):
    email: Annotated[EmailStr, StringConstraints(to_lower=True)] = Field(
        description="Registered email address of the user.",
        max_length=255
    )
    password: str = Field(
        min_length=8,
        max_length=128,
        description="Plain text password."
    )


class UserCreate(SQLModel):
    """
    DTO for User Registration.
    The user joins an existing organization; their org type is taken from it.
    """
    first_name: str = Field(
        min_length=1,
        max_length=50,
        description="User's given name."
    )
    last_name: str = Field(
        min_length=1,
        max_length=50,
        description="User's family name."
    )
    email: Annotated[EmailStr, StringConstraints(to_lower=True)] = Field(
        description="Unique email address for signin.",
        max_length=255
    )
    password: str = Field(
        min_length=8,
        max_length=128,
        description="Plain text password."
    )
    phone: Optional[str] = Field(default=None, max_length=20)
    organization_id: UUID = Field(
        description="The organization the user will act for."
    )


class AdminCreate(SQLModel):
    """Payload a super admin uses to create another administrator."""
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: Annotated[EmailStr, StringConstraints(to_lower=True)] = Field(max_length=255)
    password: str = Field(min_length=8, max_length=128)
    phone: Optional[str] = Field(default=None, max_length=20)
    organization_id: Optional[UUID] = Field(
        default=None,
        description="Defaults to the internal ADMIN organization."
    )


class UserStatusUpdate(SQLModel):
    is_active: Optional[bool] = None
    is_verified: Optional[bool] = None


class UserRoleUpdate(SQLModel):
    role: UserRole
