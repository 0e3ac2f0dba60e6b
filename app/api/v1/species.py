import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import get_current_user, get_species_service
from app.db.schema import ConservationStatus, User
from app.models.common import MessageRead, Page
from app.models.species import SpeciesAnalytics, SpeciesCreate, SpeciesRead, SpeciesUpdate
from app.services.species import SpeciesService


router = APIRouter()


@router.post(
    "/",
    response_model=SpeciesRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a herb species"
)
def create_species(
    data: SpeciesCreate,
    current_user: User = Depends(get_current_user),
    service: SpeciesService = Depends(get_species_service)
):
    return service.create_species(current_user, data)


@router.get(
    "/",
    response_model=Page[SpeciesRead],
    summary="List species"
)
def list_species(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, description="Matches scientific or common name"),
    conservation_status: Optional[ConservationStatus] = Query(None),
    current_user: User = Depends(get_current_user),
    service: SpeciesService = Depends(get_species_service)
):
    return service.list_species(page, limit, search, conservation_status)


@router.get(
    "/endangered",
    response_model=List[SpeciesRead],
    summary="Species that are vulnerable or worse"
)
def list_endangered(
    current_user: User = Depends(get_current_user),
    service: SpeciesService = Depends(get_species_service)
):
    return service.list_endangered()


@router.get(
    "/analytics",
    response_model=SpeciesAnalytics,
    summary="Species statistics"
)
def get_analytics(
    current_user: User = Depends(get_current_user),
    service: SpeciesService = Depends(get_species_service)
):
    return service.get_analytics()


@router.get(
    "/search",
    response_model=List[SpeciesRead],
    summary="Search by medicinal use"
)
def search_by_medicinal_use(
    medicinal_use: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user),
    service: SpeciesService = Depends(get_species_service)
):
    return service.search_by_medicinal_use(medicinal_use)


@router.get(
    "/region/{region}",
    response_model=List[SpeciesRead],
    summary="Species growing in a region"
)
def list_by_region(
    region: str,
    current_user: User = Depends(get_current_user),
    service: SpeciesService = Depends(get_species_service)
):
    return service.list_by_region(region)


@router.get("/{species_id}", response_model=SpeciesRead, summary="Get species")
def get_species(
    species_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: SpeciesService = Depends(get_species_service)
):
    return service.get_species(species_id)


@router.patch("/{species_id}", response_model=SpeciesRead, summary="Update species")
def update_species(
    species_id: uuid.UUID,
    data: SpeciesUpdate,
    current_user: User = Depends(get_current_user),
    service: SpeciesService = Depends(get_species_service)
):
    return service.update_species(species_id, data)


@router.delete(
    "/{species_id}",
    response_model=MessageRead,
    summary="Delete species",
    description="Fails with 409 while collection events reference the species."
)
def delete_species(
    species_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: SpeciesService = Depends(get_species_service)
):
    return service.delete_species(species_id)
