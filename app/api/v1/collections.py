import uuid
from typing import List
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from app.core.dependencies import get_collection_service, get_current_user, require_org_types
from app.db.schema import OrgType, User
from app.models.collection import CollectionCreate, CollectionRead
from app.models.common import Page
from app.services.collection import CollectionService


router = APIRouter()

farmer_only = require_org_types(OrgType.FARMER)


@router.post(
    "/",
    response_model=CollectionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record a harvest",
    description="Stores the collection event (and photo document) and queues notarization."
)
def create_collection(
    data: CollectionCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(farmer_only),
    service: CollectionService = Depends(get_collection_service)
):
    return service.create_collection(current_user, data, background_tasks)


@router.get(
    "/",
    response_model=Page[CollectionRead],
    summary="List collection events"
)
def list_collections(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    unbatched_only: bool = Query(False, description="Only events not yet assigned to a batch"),
    current_user: User = Depends(get_current_user),
    service: CollectionService = Depends(get_collection_service)
):
    return service.list_collections(page, limit, unbatched_only)


@router.get(
    "/my",
    response_model=List[CollectionRead],
    summary="My harvests"
)
def list_my_collections(
    current_user: User = Depends(farmer_only),
    service: CollectionService = Depends(get_collection_service)
):
    return service.list_farmer_collections(current_user)


@router.get("/{event_id}", response_model=CollectionRead, summary="Get collection event")
def get_collection(
    event_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: CollectionService = Depends(get_collection_service)
):
    return service.get_collection_read(event_id)
