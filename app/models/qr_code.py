from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from app.db.schema import QREntityType


class QRSnapshot(SQLModel):
    """
    QR payload as decoded by a client scanner and sent back with a request.
    Entity fields are kept as loose strings; they are resolved server side.
    """
    qr_hash: Optional[str] = Field(default=None, max_length=64)
    entity_type: Optional[str] = Field(default=None, max_length=50)
    entity_id: Optional[str] = Field(default=None, max_length=64)
    custom_data: Optional[Dict[str, Any]] = None
    raw_qr_data: Optional[str] = Field(default=None, max_length=4000)


class QRCodeCreate(SQLModel):
    entity_type: QREntityType
    entity_id: UUID
    custom_data: Dict[str, Any] = Field(default_factory=dict)


class QRCodeUpdate(SQLModel):
    is_active: Optional[bool] = None
    custom_data: Optional[Dict[str, Any]] = None


class QRCodeRead(SQLModel):
    id: UUID
    qr_hash: str
    entity_type: QREntityType
    entity_id: UUID
    generated_by_id: UUID
    scan_count: int
    last_scanned_at: Optional[datetime] = None
    is_active: bool
    custom_data: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class QRScanResult(SQLModel):
    """What a consumer sees after scanning: the code plus the live entity it addresses."""
    qr_code: QRCodeRead
    entity_type: QREntityType
    entity_id: UUID
    entity: Optional[Dict[str, Any]] = None
    related: Dict[str, Any] = Field(default_factory=dict)


class QRAnalytics(SQLModel):
    total_codes: int
    active_codes: int
    total_scans: int
    by_entity_type: Dict[str, int]
    most_scanned: List[QRCodeRead]
