import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import get_current_user, get_supply_chain_service
from app.db.schema import SupplyChainEventType, User
from app.models.common import MessageRead, Page
from app.models.supply_chain import (
    SupplyChainAnalytics, SupplyChainEventCreate, SupplyChainEventRead,
    SupplyChainEventUpdate, TraceabilityPath
)
from app.services.supply_chain import SupplyChainService


router = APIRouter()


@router.post(
    "/",
    response_model=SupplyChainEventRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record a supply chain event",
    description="The caller becomes the handler of the event."
)
def create_event(
    data: SupplyChainEventCreate,
    current_user: User = Depends(get_current_user),
    service: SupplyChainService = Depends(get_supply_chain_service)
):
    return service.record_event(current_user, data)


@router.get(
    "/",
    response_model=Page[SupplyChainEventRead],
    summary="List supply chain events"
)
def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    event_type: Optional[SupplyChainEventType] = Query(None),
    handler_id: Optional[uuid.UUID] = Query(None),
    batch_id: Optional[uuid.UUID] = Query(None, description="Raw material batch or finished good id"),
    current_user: User = Depends(get_current_user),
    service: SupplyChainService = Depends(get_supply_chain_service)
):
    return service.list_events(page, limit, event_type, handler_id, batch_id)


@router.get(
    "/analytics",
    response_model=SupplyChainAnalytics,
    summary="Event counts and average processing time"
)
def get_analytics(
    mine: bool = Query(False, description="Only events handled by the caller"),
    current_user: User = Depends(get_current_user),
    service: SupplyChainService = Depends(get_supply_chain_service)
):
    return service.get_analytics(current_user.id if mine else None)


@router.get(
    "/batch/{batch_id}",
    response_model=TraceabilityPath,
    summary="Chronological path of a batch or product"
)
def get_traceability_path(
    batch_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: SupplyChainService = Depends(get_supply_chain_service)
):
    return service.get_traceability_path(batch_id)


@router.get("/{event_id}", response_model=SupplyChainEventRead, summary="Get event")
def get_event(
    event_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: SupplyChainService = Depends(get_supply_chain_service)
):
    return service.get_event(event_id)


@router.patch(
    "/{event_id}",
    response_model=SupplyChainEventRead,
    summary="Edit an event",
    description="Only the handler may edit, and only while no QR code references the event."
)
def update_event(
    event_id: uuid.UUID,
    data: SupplyChainEventUpdate,
    current_user: User = Depends(get_current_user),
    service: SupplyChainService = Depends(get_supply_chain_service)
):
    return service.update_event(current_user, event_id, data)


@router.delete("/{event_id}", response_model=MessageRead, summary="Delete an event")
def delete_event(
    event_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: SupplyChainService = Depends(get_supply_chain_service)
):
    return service.delete_event(current_user, event_id)
