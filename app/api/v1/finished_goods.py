import uuid
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from app.core.dependencies import (
    get_current_user, get_finished_good_service, require_org_types
)
from app.db.schema import FinishedGoodProductType, OrgType, User
from app.models.common import MessageRead, Page
from app.models.finished_good import (
    FinishedGoodAnalytics, FinishedGoodCreate, FinishedGoodRead,
    FinishedGoodTraceability, FinishedGoodUpdate
)
from app.services.finished_good import FinishedGoodService


router = APIRouter()

manufacturer_only = require_org_types(OrgType.MANUFACTURER)


@router.post(
    "/",
    response_model=FinishedGoodRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a finished good",
    description="Stores the product and its composition, then queues notarization."
)
def create_finished_good(
    data: FinishedGoodCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(manufacturer_only),
    service: FinishedGoodService = Depends(get_finished_good_service)
):
    return service.create_finished_good(current_user, data, background_tasks)


@router.get(
    "/",
    response_model=Page[FinishedGoodRead],
    summary="List finished goods"
)
def list_finished_goods(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    product_type: Optional[FinishedGoodProductType] = Query(None),
    search: Optional[str] = Query(None, description="Matches product name or batch number"),
    current_user: User = Depends(get_current_user),
    service: FinishedGoodService = Depends(get_finished_good_service)
):
    return service.list_finished_goods(page, limit, product_type, search)


@router.get(
    "/analytics",
    response_model=FinishedGoodAnalytics,
    summary="Finished good statistics"
)
def get_analytics(
    current_user: User = Depends(get_current_user),
    service: FinishedGoodService = Depends(get_finished_good_service)
):
    return service.get_analytics()


@router.get("/{good_id}", response_model=FinishedGoodRead, summary="Get finished good")
def get_finished_good(
    good_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: FinishedGoodService = Depends(get_finished_good_service)
):
    return service.to_read(service.get_finished_good(good_id))


@router.get(
    "/{good_id}/traceability",
    response_model=FinishedGoodTraceability,
    summary="Product origin",
    description="Source batches, their collection events and farmers."
)
def get_traceability(
    good_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: FinishedGoodService = Depends(get_finished_good_service)
):
    return service.get_traceability(good_id)


@router.patch("/{good_id}", response_model=FinishedGoodRead, summary="Update finished good")
def update_finished_good(
    good_id: uuid.UUID,
    data: FinishedGoodUpdate,
    current_user: User = Depends(manufacturer_only),
    service: FinishedGoodService = Depends(get_finished_good_service)
):
    return service.update_finished_good(good_id, data)


@router.delete("/{good_id}", response_model=MessageRead, summary="Delete finished good")
def delete_finished_good(
    good_id: uuid.UUID,
    current_user: User = Depends(manufacturer_only),
    service: FinishedGoodService = Depends(get_finished_good_service)
):
    return service.delete_finished_good(good_id)
