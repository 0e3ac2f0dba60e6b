from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from pydantic import model_validator
from app.db.schema import SupplyChainEventType


class SupplyChainEventCreate(SQLModel):
    """
    A manually recorded ledger event. The caller becomes the handler.
    """
    event_type: SupplyChainEventType
    from_location_id: UUID = Field(description="Organization handing over")
    to_location_id: UUID = Field(description="Organization receiving")
    raw_material_batch_id: Optional[UUID] = None
    finished_good_id: Optional[UUID] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    event_metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_subject(self) -> 'SupplyChainEventCreate':
        if self.raw_material_batch_id and self.finished_good_id:
            raise ValueError(
                "An event refers to either a raw material batch or a finished good, not both.")
        return self


class SupplyChainEventUpdate(SQLModel):
    notes: Optional[str] = Field(default=None, max_length=1000)
    event_metadata: Optional[Dict[str, Any]] = None
    to_location_id: Optional[UUID] = None


class SupplyChainEventRead(SQLModel):
    id: UUID
    event_type: SupplyChainEventType
    handler_id: UUID
    from_location_id: UUID
    to_location_id: UUID
    raw_material_batch_id: Optional[UUID] = None
    finished_good_id: Optional[UUID] = None
    notes: Optional[str] = None
    event_metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    created_at: datetime


class TraceabilityPath(SQLModel):
    batch_id: UUID
    events: List[SupplyChainEventRead]
    total_events: int


class SupplyChainAnalytics(SQLModel):
    total_events: int
    by_event_type: Dict[str, int]
    average_processing_time_hours: Optional[float] = None
