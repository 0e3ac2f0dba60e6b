from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from app.db.schema import ConservationStatus


class SpeciesCreate(SQLModel):
    """
    Payload for registering a herb species.
    """
    scientific_name: str = Field(min_length=2, max_length=150,
                                 description="Binomial name, unique across the registry")
    common_name: str = Field(min_length=2, max_length=150)
    family: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    regions: List[str] = Field(default_factory=list)
    conservation_status: ConservationStatus = ConservationStatus.LEAST_CONCERN
    medicinal_uses: List[str] = Field(default_factory=list)


class SpeciesUpdate(SQLModel):
    scientific_name: Optional[str] = Field(default=None, min_length=2, max_length=150)
    common_name: Optional[str] = Field(default=None, min_length=2, max_length=150)
    family: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    regions: Optional[List[str]] = None
    conservation_status: Optional[ConservationStatus] = None
    medicinal_uses: Optional[List[str]] = None


class SpeciesRead(SQLModel):
    id: UUID
    scientific_name: str
    common_name: str
    family: Optional[str] = None
    description: Optional[str] = None
    regions: List[str]
    conservation_status: ConservationStatus
    medicinal_uses: List[str]
    created_at: datetime


class SpeciesAnalytics(SQLModel):
    total_species: int
    by_conservation_status: Dict[str, int]
    endangered_count: int
    most_collected: List[Dict[str, Any]]
