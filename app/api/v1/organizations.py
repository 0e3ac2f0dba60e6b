import uuid
from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status

from app.core.dependencies import get_admin_service, get_organization_service, require_admin
from app.db.schema import AdminActionType, OrgType, User
from app.models.common import MessageRead
from app.models.organization import OrganizationCreate, OrganizationRead, OrganizationUpdate
from app.services.admin import AdminService
from app.services.organization import OrganizationService


router = APIRouter()


@router.get(
    "/",
    response_model=List[OrganizationRead],
    summary="List organizations",
    description="Public list of active organizations, used by the registration form."
)
def list_organizations(
    type: Optional[OrgType] = Query(None, description="Filter by organization type"),
    service: OrganizationService = Depends(get_organization_service)
):
    return service.list_organizations(org_type=type)


@router.get(
    "/{org_id}",
    response_model=OrganizationRead,
    summary="Get organization"
)
def get_organization(
    org_id: uuid.UUID,
    service: OrganizationService = Depends(get_organization_service)
):
    return service.get_organization_read(org_id)


@router.post(
    "/",
    response_model=OrganizationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create organization (admin)"
)
def create_organization(
    data: OrganizationCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    service: OrganizationService = Depends(get_organization_service),
    admin_service: AdminService = Depends(get_admin_service)
):
    org = service.create_organization(data)
    admin_service.log_action(
        background_tasks, admin, AdminActionType.ORGANIZATION_CREATED, "Organization", org.id,
        f"Organization '{org.name}' created", {"type": org.type.value},
        request.client.host if request.client else None,
    )
    return service.get_organization_read(org.id)


@router.patch(
    "/{org_id}",
    response_model=OrganizationRead,
    summary="Update organization (admin)"
)
def update_organization(
    org_id: uuid.UUID,
    data: OrganizationUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    service: OrganizationService = Depends(get_organization_service),
    admin_service: AdminService = Depends(get_admin_service)
):
    org = service.update_organization(org_id, data)
    admin_service.log_action(
        background_tasks, admin, AdminActionType.ORGANIZATION_UPDATED, "Organization", org.id,
        f"Organization '{org.name}' updated", data.model_dump(exclude_unset=True),
        request.client.host if request.client else None,
    )
    return service.get_organization_read(org.id)


@router.delete(
    "/{org_id}",
    response_model=MessageRead,
    summary="Delete organization (admin)",
    description="Fails with 409 while users still belong to the organization."
)
def delete_organization(
    org_id: uuid.UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    service: OrganizationService = Depends(get_organization_service),
    admin_service: AdminService = Depends(get_admin_service)
):
    org = service.delete_organization(org_id)
    admin_service.log_action(
        background_tasks, admin, AdminActionType.ORGANIZATION_DELETED, "Organization", org_id,
        f"Organization '{org.name}' deleted",
        ip_address=request.client.host if request.client else None,
    )
    return MessageRead(message="Organization deleted.", id=org_id)
