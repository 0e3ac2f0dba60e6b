import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import get_distributor_service, require_org_types
from app.db.schema import (
    InventoryStatus, OrgType, ShipmentStatus, StockProductType, User, VerificationStatus
)
from app.models.common import Page
from app.models.distributor import (
    DistributorAnalytics, DistributorMetrics, InventoryItemCreate, InventoryItemRead,
    InventoryItemUpdate, ShipmentCreate, ShipmentRead, ShipmentStatusUpdate,
    VerificationCreate, VerificationRead, VerificationUpdate
)
from app.services.distributor import DistributorService


router = APIRouter()

distributor_only = require_org_types(OrgType.DISTRIBUTOR)


@router.get("/metrics", response_model=DistributorMetrics, summary="Distributor dashboard counters")
def get_metrics(
    current_user: User = Depends(distributor_only),
    service: DistributorService = Depends(get_distributor_service)
):
    return service.get_metrics(current_user)


@router.get("/analytics", response_model=DistributorAnalytics, summary="Distributor breakdowns")
def get_analytics(
    current_user: User = Depends(distributor_only),
    service: DistributorService = Depends(get_distributor_service)
):
    return service.get_analytics(current_user)


# --- Inventory ---

@router.get("/inventory", response_model=Page[InventoryItemRead], summary="List inventory")
def list_inventory(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    inventory_status: Optional[InventoryStatus] = Query(None, alias="status"),
    product_type: Optional[StockProductType] = Query(None),
    current_user: User = Depends(distributor_only),
    service: DistributorService = Depends(get_distributor_service)
):
    return service.list_inventory(current_user, page, limit, inventory_status, product_type)


@router.post(
    "/inventory",
    response_model=InventoryItemRead,
    status_code=status.HTTP_201_CREATED,
    summary="Receive stock"
)
def add_inventory(
    data: InventoryItemCreate,
    current_user: User = Depends(distributor_only),
    service: DistributorService = Depends(get_distributor_service)
):
    return service.add_inventory(current_user, data)


@router.patch("/inventory/{item_id}", response_model=InventoryItemRead, summary="Update stock line")
def update_inventory(
    item_id: uuid.UUID,
    data: InventoryItemUpdate,
    current_user: User = Depends(distributor_only),
    service: DistributorService = Depends(get_distributor_service)
):
    return service.update_inventory(current_user, item_id, data)


# --- Shipments ---

@router.get("/shipments", response_model=Page[ShipmentRead], summary="List shipments")
def list_shipments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    shipment_status: Optional[ShipmentStatus] = Query(None, alias="status"),
    current_user: User = Depends(distributor_only),
    service: DistributorService = Depends(get_distributor_service)
):
    return service.list_shipments(current_user, page, limit, shipment_status)


@router.post(
    "/shipments",
    response_model=ShipmentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a shipment",
    description="Draws items from stock; fails with 409 when stock is insufficient."
)
def create_shipment(
    data: ShipmentCreate,
    current_user: User = Depends(distributor_only),
    service: DistributorService = Depends(get_distributor_service)
):
    return service.create_shipment(current_user, data)


@router.get("/shipments/{shipment_id}", response_model=ShipmentRead, summary="Get shipment")
def get_shipment(
    shipment_id: uuid.UUID,
    current_user: User = Depends(distributor_only),
    service: DistributorService = Depends(get_distributor_service)
):
    return service.get_shipment_read(current_user, shipment_id)


@router.patch(
    "/shipments/{shipment_id}/status",
    response_model=ShipmentRead,
    summary="Move a shipment to a new status"
)
def update_shipment_status(
    shipment_id: uuid.UUID,
    data: ShipmentStatusUpdate,
    current_user: User = Depends(distributor_only),
    service: DistributorService = Depends(get_distributor_service)
):
    return service.update_shipment_status(current_user, shipment_id, data)


# --- Verifications ---

@router.get("/verifications", response_model=Page[VerificationRead], summary="List verifications")
def list_verifications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    verification_status: Optional[VerificationStatus] = Query(None, alias="status"),
    current_user: User = Depends(distributor_only),
    service: DistributorService = Depends(get_distributor_service)
):
    return service.list_verifications(current_user, page, limit, verification_status)


@router.post(
    "/verifications",
    response_model=VerificationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Request a verification"
)
def create_verification(
    data: VerificationCreate,
    current_user: User = Depends(distributor_only),
    service: DistributorService = Depends(get_distributor_service)
):
    return service.create_verification(current_user, data)


@router.patch(
    "/verifications/{verification_id}",
    response_model=VerificationRead,
    summary="Update a verification"
)
def update_verification(
    verification_id: uuid.UUID,
    data: VerificationUpdate,
    current_user: User = Depends(distributor_only),
    service: DistributorService = Depends(get_distributor_service)
):
    return service.update_verification(current_user, verification_id, data)
