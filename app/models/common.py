from typing import Generic, List, Optional, TypeVar
from uuid import UUID
from pydantic import BaseModel


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Envelope for paginated list endpoints."""
    items: List[T]
    total: int
    page: int
    limit: int
    pages: int


class MessageRead(BaseModel):
    message: str
    id: Optional[UUID] = None
