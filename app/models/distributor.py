from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from app.db.schema import (
    InventoryStatus, QuantityUnit, RecipientType, ShipmentStatus, StockProductType,
    VerificationEntityType, VerificationStatus, VerificationType
)


class InventoryItemCreate(SQLModel):
    product_type: StockProductType
    entity_id: UUID
    quantity: float = Field(gt=0)
    unit: QuantityUnit
    location: Optional[str] = Field(default=None, max_length=200)
    warehouse_section: Optional[str] = Field(default=None, max_length=100)
    status: InventoryStatus = InventoryStatus.IN_STOCK
    received_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    quality_notes: Optional[str] = Field(default=None, max_length=1000)
    storage_conditions: Optional[str] = Field(default=None, max_length=500)


class InventoryItemUpdate(SQLModel):
    quantity: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = Field(default=None, max_length=200)
    warehouse_section: Optional[str] = Field(default=None, max_length=100)
    status: Optional[InventoryStatus] = None
    expiry_date: Optional[datetime] = None
    quality_notes: Optional[str] = Field(default=None, max_length=1000)
    storage_conditions: Optional[str] = Field(default=None, max_length=500)


class InventoryItemRead(SQLModel):
    id: UUID
    distributor_id: UUID
    organization_id: UUID
    product_type: StockProductType
    entity_id: UUID
    product_name: str
    quantity: float
    unit: QuantityUnit
    location: Optional[str] = None
    warehouse_section: Optional[str] = None
    status: InventoryStatus
    received_date: datetime
    expiry_date: Optional[datetime] = None
    quality_notes: Optional[str] = None
    storage_conditions: Optional[str] = None
    created_at: datetime


class ShipmentItemCreate(SQLModel):
    product_type: StockProductType
    entity_id: UUID
    product_name: str = Field(max_length=200)
    quantity: float = Field(gt=0)
    unit: QuantityUnit
    unit_price: Optional[float] = Field(default=None, gt=0)
    total_price: Optional[float] = Field(default=None, gt=0)
    batch_number: Optional[str] = Field(default=None, max_length=50)


class ShipmentCreate(SQLModel):
    recipient_type: RecipientType
    recipient_id: UUID = Field(description="Receiving organization")
    recipient_name: Optional[str] = Field(default=None, max_length=200)
    recipient_address: str = Field(max_length=500)
    recipient_phone: Optional[str] = Field(default=None, max_length=20)
    shipment_date: Optional[datetime] = None
    expected_delivery: Optional[datetime] = None
    tracking_number: Optional[str] = Field(default=None, max_length=100)
    carrier_info: Optional[Dict[str, Any]] = None
    shipping_cost: Optional[float] = Field(default=None, gt=0)
    total_value: Optional[float] = Field(default=None, gt=0)
    notes: Optional[str] = Field(default=None, max_length=1000)
    special_instructions: Optional[str] = Field(default=None, max_length=500)
    items: List[ShipmentItemCreate] = Field(default_factory=list)


class ShipmentStatusUpdate(SQLModel):
    status: ShipmentStatus
    tracking_number: Optional[str] = Field(default=None, max_length=100)
    carrier_info: Optional[Dict[str, Any]] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class ShipmentItemRead(SQLModel):
    id: UUID
    product_type: StockProductType
    entity_id: UUID
    product_name: str
    quantity: float
    unit: QuantityUnit
    unit_price: Optional[float] = None
    total_price: Optional[float] = None
    batch_number: Optional[str] = None


class ShipmentRead(SQLModel):
    id: UUID
    shipment_number: str
    distributor_id: UUID
    organization_id: UUID
    recipient_type: RecipientType
    recipient_id: UUID
    recipient_name: Optional[str] = None
    recipient_address: str
    status: ShipmentStatus
    shipment_date: Optional[datetime] = None
    expected_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    tracking_number: Optional[str] = None
    carrier_info: Optional[Dict[str, Any]] = None
    shipping_cost: Optional[float] = None
    total_value: Optional[float] = None
    notes: Optional[str] = None
    items: List[ShipmentItemRead] = []
    created_at: datetime


class VerificationCreate(SQLModel):
    verification_type: VerificationType
    entity_type: VerificationEntityType
    entity_id: UUID
    verification_method: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=1000)


class VerificationUpdate(SQLModel):
    status: Optional[VerificationStatus] = None
    results: Optional[Dict[str, Any]] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class VerificationRead(SQLModel):
    id: UUID
    verification_number: str
    verification_type: VerificationType
    entity_type: VerificationEntityType
    entity_id: UUID
    distributor_id: UUID
    organization_id: UUID
    status: VerificationStatus
    verification_method: Optional[str] = None
    results: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    verified_at: Optional[datetime] = None
    created_at: datetime


class DistributorMetrics(SQLModel):
    inventory_items: int
    low_stock_items: int
    out_of_stock_items: int
    total_shipments: int
    shipments_in_transit: int
    delivered_shipments: int
    pending_verifications: int


class DistributorAnalytics(SQLModel):
    shipments_by_status: Dict[str, int]
    inventory_by_status: Dict[str, int]
    verifications_by_status: Dict[str, int]
    total_shipped_value: float
