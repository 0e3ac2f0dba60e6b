from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from pydantic import model_validator
from app.db.schema import FinishedGoodProductType, QuantityUnit


class CompositionCreate(SQLModel):
    raw_material_batch_id: UUID
    percentage: float = Field(gt=0, le=100, description="Share of the product, 0-100")
    quantity_used: float = Field(gt=0)
    notes: Optional[str] = Field(default=None, max_length=500)


class FinishedGoodCreate(SQLModel):
    """
    Payload for a manufactured product and the batches it was made from.
    """
    product_name: str = Field(min_length=1, max_length=200)
    product_type: FinishedGoodProductType
    quantity: float = Field(gt=0)
    unit: QuantityUnit
    description: Optional[str] = Field(default=None, max_length=1000)
    batch_number: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Required for notarization; products without one stay local."
    )
    manufacture_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    composition: List[CompositionCreate] = Field(min_length=1)

    @model_validator(mode='after')
    def validate_composition(self) -> 'FinishedGoodCreate':
        batch_ids = [c.raw_material_batch_id for c in self.composition]
        if len(batch_ids) != len(set(batch_ids)):
            raise ValueError("Each raw material batch may appear only once in the composition.")

        total = sum(c.percentage for c in self.composition)
        # Float sums like 33.3 + 33.3 + 33.4 must still pass
        if total > 100 + 1e-9:
            raise ValueError(
                f"Composition percentages add up to {total:g}; the maximum is 100.")
        return self


class FinishedGoodUpdate(SQLModel):
    product_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    product_type: Optional[FinishedGoodProductType] = None
    quantity: Optional[float] = Field(default=None, gt=0)
    unit: Optional[QuantityUnit] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    batch_number: Optional[str] = Field(default=None, max_length=50)
    manufacture_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None


class CompositionRead(SQLModel):
    id: UUID
    raw_material_batch_id: UUID
    percentage: float
    quantity_used: float
    notes: Optional[str] = None
    herb_name: Optional[str] = None


class FinishedGoodRead(SQLModel):
    id: UUID
    product_name: str
    product_type: FinishedGoodProductType
    quantity: float
    unit: QuantityUnit
    description: Optional[str] = None
    batch_number: Optional[str] = None
    manufacture_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    manufacturer_id: UUID
    organization_id: UUID
    composition: List[CompositionRead] = []
    created_at: datetime
    updated_at: datetime


class SourceBatchTrace(SQLModel):
    raw_material_batch_id: UUID
    herb_name: str
    percentage: float
    quantity_used: float
    collection_event_ids: List[UUID]
    farmer_ids: List[UUID]


class FinishedGoodTraceability(SQLModel):
    finished_good: FinishedGoodRead
    sources: List[SourceBatchTrace]
    total_percentage: float
    herbs: List[str]
    farmer_ids: List[UUID]


class FinishedGoodAnalytics(SQLModel):
    total_products: int
    by_product_type: Dict[str, int]
    total_quantity_by_unit: Dict[str, float]
