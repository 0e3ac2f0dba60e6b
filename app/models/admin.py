from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from app.db.schema import AdminActionType, AlertSeverity
from app.models.user import UserRead


class AlertCreate(SQLModel):
    alert_type: str = Field(min_length=2, max_length=50)
    severity: AlertSeverity = AlertSeverity.MEDIUM
    title: str = Field(min_length=2, max_length=200)
    message: str = Field(min_length=2, max_length=2000)


class AlertRead(SQLModel):
    id: UUID
    alert_type: str
    severity: AlertSeverity
    title: str
    message: str
    is_resolved: bool
    resolved_by_id: Optional[UUID] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime


class AdminActionRead(SQLModel):
    id: UUID
    admin_id: UUID
    action_type: AdminActionType
    target_type: str
    target_id: UUID
    description: str
    details: Dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = None
    timestamp: datetime


class DashboardStats(SQLModel):
    total_users: int
    total_organizations: int
    total_raw_material_batches: int
    total_finished_goods: int
    total_lab_tests: int
    total_certificates: int
    total_qr_codes: int
    total_supply_chain_events: int
    organizations_by_type: Dict[str, int]
    recent_users: List[UserRead]
    open_alerts: List[AlertRead]
