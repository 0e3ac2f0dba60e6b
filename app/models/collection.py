from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from pydantic import HttpUrl
from app.db.schema import QuantityUnit


class GeoPoint(SQLModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class CollectionCreate(SQLModel):
    """
    A harvest recorded in the field. The authenticated farmer is both the
    collector and the farmer on the stored event.
    """
    species_id: Optional[UUID] = Field(default=None, description="Registered herb species")
    quantity_kg: float = Field(gt=0, description="Harvested weight in kilograms")
    initial_quality_metrics: Dict[str, Any] = Field(
        default_factory=dict,
        description="Field observations, e.g. {'moisture': 12.5, 'color': 'brown'}"
    )
    location: GeoPoint
    photo_url: Optional[HttpUrl] = Field(
        default=None,
        description="If given, a PHOTO document is attached to the event."
    )
    notes: Optional[str] = Field(default=None, max_length=1000)
    collection_date: Optional[datetime] = None


class CollectionRead(SQLModel):
    id: UUID
    collector_id: UUID
    farmer_id: UUID
    species_id: Optional[UUID] = None
    species_name: Optional[str] = None
    quantity: float
    unit: QuantityUnit
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    quality_notes: Optional[str] = None
    notes: Optional[str] = None
    photo_url: Optional[str] = None
    collection_date: datetime
    raw_material_batch_id: Optional[UUID] = None
    created_at: datetime
