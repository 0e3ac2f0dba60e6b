import uuid
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status

from app.core.dependencies import get_admin_service, require_admin, require_super_admin
from app.db.schema import AdminActionType, OrgType, SupplyChainEventType, User, UserRole
from app.models.admin import AdminActionRead, AlertCreate, AlertRead, DashboardStats
from app.models.common import Page
from app.models.supply_chain import SupplyChainEventRead
from app.models.user import AdminCreate, UserRead, UserRoleUpdate, UserStatusUpdate
from app.services.admin import AdminService


router = APIRouter()


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


@router.get("/dashboard", response_model=DashboardStats, summary="Platform overview")
def get_dashboard(
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.get_dashboard()


# --- Users ---

@router.get("/users", response_model=Page[UserRead], summary="List users")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[UserRole] = Query(None),
    org_type: Optional[OrgType] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="Matches email or name"),
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.list_users(page, limit, role, org_type, is_active, search)


@router.patch(
    "/users/{user_id}/status",
    response_model=UserRead,
    summary="Activate, deactivate or verify a user"
)
def update_user_status(
    user_id: uuid.UUID,
    data: UserStatusUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.update_user_status(admin, user_id, data, background_tasks, _client_ip(request))


@router.patch(
    "/users/{user_id}/role",
    response_model=UserRead,
    summary="Change a user's role (super admin)"
)
def update_user_role(
    user_id: uuid.UUID,
    data: UserRoleUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.update_user_role(admin, user_id, data, background_tasks, _client_ip(request))


@router.post(
    "/admins",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create an administrator (super admin)"
)
def create_admin(
    data: AdminCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.create_admin(admin, data, background_tasks, _client_ip(request))


@router.get(
    "/supply-chain-events",
    response_model=Page[SupplyChainEventRead],
    summary="All ledger events"
)
def list_supply_chain_events(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    event_type: Optional[SupplyChainEventType] = Query(None),
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.list_supply_chain_events(page, limit, event_type)


# --- Alerts & audit log ---

@router.get("/alerts", response_model=Page[AlertRead], summary="List system alerts")
def list_alerts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    is_resolved: Optional[bool] = Query(None),
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.list_alerts(page, limit, is_resolved)


@router.post(
    "/alerts",
    response_model=AlertRead,
    status_code=status.HTTP_201_CREATED,
    summary="Raise a system alert"
)
def create_alert(
    data: AlertCreate,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.create_alert(data)


@router.patch("/alerts/{alert_id}/resolve", response_model=AlertRead, summary="Resolve an alert")
def resolve_alert(
    alert_id: uuid.UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.resolve_alert(admin, alert_id, background_tasks, _client_ip(request))


@router.get("/actions", response_model=Page[AdminActionRead], summary="Admin action log")
def list_actions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    action_type: Optional[AdminActionType] = Query(None),
    admin_id: Optional[uuid.UUID] = Query(None),
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.list_actions(page, limit, action_type, admin_id)
