from uuid import UUID
from sqlmodel import SQLModel

from app.models.user import UserRead


class Token(SQLModel):
    access_token: str
    refresh_token: str
    token_type: str


class TokenAccess(SQLModel):
    access_token: str


class TokenRefresh(SQLModel):
    refresh_token: str


class TokenData(SQLModel):
    user_id: UUID


class RegistrationRead(SQLModel):
    """
    Registration response: the new profile plus a ready-to-use token pair,
    so the client does not need a second round trip to sign in.
    """
    user: UserRead
    tokens: Token
