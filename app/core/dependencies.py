from fastapi import BackgroundTasks, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import InvalidTokenError
from sqlmodel import Session
from pydantic import ValidationError

from app.db.core import get_session
from app.db.schema import User, UserRole, OrgType
from app.services.user import UserService
from app.services.organization import OrganizationService
from app.services.species import SpeciesService
from app.services.collection import CollectionService
from app.services.raw_material_batch import RawMaterialBatchService
from app.services.finished_good import FinishedGoodService
from app.services.lab import LabService
from app.services.supply_chain import SupplyChainService
from app.services.qr_code import QRCodeService
from app.services.document import DocumentService
from app.services.distributor import DistributorService
from app.services.admin import AdminService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

ADMIN_ROLES = (UserRole.ADMIN, UserRole.SUPER_ADMIN)


def get_user_service(session: Session = Depends(get_session)) -> UserService:
    """Creates a UserService instance using the active DB session."""
    return UserService(session)


def get_organization_service(session: Session = Depends(get_session)) -> OrganizationService:
    return OrganizationService(session=session)


def get_species_service(session: Session = Depends(get_session)) -> SpeciesService:
    return SpeciesService(session=session)


def get_collection_service(session: Session = Depends(get_session)) -> CollectionService:
    return CollectionService(session=session)


def get_raw_material_batch_service(
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session)
) -> RawMaterialBatchService:
    return RawMaterialBatchService(session=session, background_tasks=background_tasks)


def get_finished_good_service(session: Session = Depends(get_session)) -> FinishedGoodService:
    return FinishedGoodService(session=session)


def get_lab_service(
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session)
) -> LabService:
    """The request's background tasks carry notary submissions of new ledger events."""
    return LabService(session=session, background_tasks=background_tasks)


def get_supply_chain_service(
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session)
) -> SupplyChainService:
    return SupplyChainService(session=session, background_tasks=background_tasks)


def get_qr_code_service(session: Session = Depends(get_session)) -> QRCodeService:
    return QRCodeService(session=session)


def get_document_service(session: Session = Depends(get_session)) -> DocumentService:
    return DocumentService(session=session)


def get_distributor_service(
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session)
) -> DistributorService:
    return DistributorService(session=session, background_tasks=background_tasks)


def get_admin_service(session: Session = Depends(get_session)) -> AdminService:
    return AdminService(session=session)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    service: UserService = Depends(get_user_service)
) -> User:
    """
    Validates the JWT token and retrieves the user.
    This is the gatekeeper for protected routes.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        token_data = service.verify_access_token(token)

        if not token_data:
            raise credentials_exception

    except (InvalidTokenError, ValidationError):
        raise credentials_exception

    user = service.get_user_by_id(token_data.user_id)

    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated. Please contact support."
        )

    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role not in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator privileges required."
        )
    return current_user


def require_super_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.SUPER_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super administrator privileges required."
        )
    return current_user


def require_org_types(*org_types: OrgType):
    """
    Dependency factory restricting a route to users of the given
    organization types. Administrators pass regardless of type.
    """
    allowed = ", ".join(t.value for t in org_types)

    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role in ADMIN_ROLES or current_user.org_type in org_types:
            return current_user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"This action is restricted to {allowed} organizations."
        )

    return checker
