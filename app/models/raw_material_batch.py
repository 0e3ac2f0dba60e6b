from datetime import datetime
from typing import List, Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from app.db.schema import QuantityUnit, RawMaterialBatchStatus
from app.models.collection import CollectionRead


class RawMaterialBatchCreate(SQLModel):
    herb_name: str = Field(min_length=2, max_length=100)
    scientific_name: Optional[str] = Field(default=None, max_length=150)
    quantity: float = Field(gt=0)
    unit: QuantityUnit
    description: Optional[str] = Field(default=None, max_length=1000)
    notes: Optional[str] = Field(default=None, max_length=1000)
    collection_event_ids: List[UUID] = Field(
        min_length=1,
        description="Collection events rolled into this batch."
    )


class RawMaterialBatchUpdate(SQLModel):
    herb_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    scientific_name: Optional[str] = Field(default=None, max_length=150)
    quantity: Optional[float] = Field(default=None, gt=0)
    unit: Optional[QuantityUnit] = None
    status: Optional[RawMaterialBatchStatus] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    notes: Optional[str] = Field(default=None, max_length=1000)


class RawMaterialBatchRead(SQLModel):
    id: UUID
    herb_name: str
    scientific_name: Optional[str] = None
    quantity: float
    unit: QuantityUnit
    status: RawMaterialBatchStatus
    description: Optional[str] = None
    notes: Optional[str] = None
    created_by_id: UUID
    organization_id: UUID
    collection_event_ids: List[UUID] = []
    created_at: datetime
    updated_at: datetime


class RawMaterialBatchTraceability(SQLModel):
    batch: RawMaterialBatchRead
    collection_events: List[CollectionRead]
    total_collected_quantity: float
    farmers: List[UUID]
    collectors: List[UUID]
    species: List[str]
