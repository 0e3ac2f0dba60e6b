import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import get_current_user, get_raw_material_batch_service
from app.db.schema import RawMaterialBatchStatus, User
from app.models.common import MessageRead, Page
from app.models.raw_material_batch import (
    RawMaterialBatchCreate, RawMaterialBatchRead, RawMaterialBatchTraceability,
    RawMaterialBatchUpdate
)
from app.services.raw_material_batch import RawMaterialBatchService


router = APIRouter()


@router.post(
    "/",
    response_model=RawMaterialBatchRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a batch from collection events"
)
def create_batch(
    data: RawMaterialBatchCreate,
    current_user: User = Depends(get_current_user),
    service: RawMaterialBatchService = Depends(get_raw_material_batch_service)
):
    return service.to_read(service.create_batch(current_user, data))


@router.get(
    "/",
    response_model=Page[RawMaterialBatchRead],
    summary="List batches"
)
def list_batches(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    herb_name: Optional[str] = Query(None, description="Substring match on herb name"),
    batch_status: Optional[RawMaterialBatchStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    service: RawMaterialBatchService = Depends(get_raw_material_batch_service)
):
    return service.list_batches(page, limit, herb_name, batch_status)


@router.get("/{batch_id}", response_model=RawMaterialBatchRead, summary="Get batch")
def get_batch(
    batch_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: RawMaterialBatchService = Depends(get_raw_material_batch_service)
):
    return service.to_read(service.get_batch(batch_id))


@router.get(
    "/{batch_id}/traceability",
    response_model=RawMaterialBatchTraceability,
    summary="Batch origin",
    description="Collection events, farmers and collectors behind a batch."
)
def get_traceability(
    batch_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: RawMaterialBatchService = Depends(get_raw_material_batch_service)
):
    return service.get_traceability(batch_id)


@router.patch("/{batch_id}", response_model=RawMaterialBatchRead, summary="Update batch")
def update_batch(
    batch_id: uuid.UUID,
    data: RawMaterialBatchUpdate,
    current_user: User = Depends(get_current_user),
    service: RawMaterialBatchService = Depends(get_raw_material_batch_service)
):
    return service.to_read(service.update_batch(current_user, batch_id, data))


@router.delete(
    "/{batch_id}",
    response_model=MessageRead,
    summary="Delete batch",
    description="Fails with 409 when a finished good uses the batch."
)
def delete_batch(
    batch_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: RawMaterialBatchService = Depends(get_raw_material_batch_service)
):
    return service.delete_batch(batch_id)
