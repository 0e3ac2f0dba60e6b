from typing import List, Optional
from uuid import UUID
from fastapi import HTTPException, status
from loguru import logger
from sqlmodel import Session, select, func

from app.db.schema import Organization, OrgType, User
from app.models.organization import OrganizationCreate, OrganizationRead, OrganizationUpdate


class OrganizationService:
    """
    Service layer for supply-chain participants (farms, manufacturers,
    labs, distributors).

    Listing is public so the registration form can offer a choice of
    organizations; mutations are admin-only and enforced at the router.
    """

    def __init__(self, session: Session):
        self.session = session

    def _user_count(self, org_id: UUID) -> int:
        return self.session.exec(
            select(func.count(User.id)).where(User.organization_id == org_id)
        ).one()

    def _to_read(self, org: Organization) -> OrganizationRead:
        read = OrganizationRead.model_validate(org)
        read.user_count = self._user_count(org.id)
        return read

    def get_organization(self, org_id: UUID) -> Organization:
        org = self.session.get(Organization, org_id)
        if not org:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Organization not found."
            )
        return org

    def get_organization_read(self, org_id: UUID) -> OrganizationRead:
        return self._to_read(self.get_organization(org_id))

    def list_organizations(
        self,
        org_type: Optional[OrgType] = None,
        include_inactive: bool = False
    ) -> List[OrganizationRead]:
        """
        Lists organizations ordered by type then name.

        Args:
            org_type: Restrict to one organization type (e.g. LABS).
            include_inactive: Admin views also see deactivated organizations.
        """
        query = select(Organization)
        if not include_inactive:
            query = query.where(Organization.is_active == True)
        if org_type:
            query = query.where(Organization.type == org_type)
        else:
            # The internal admin organization is not a supply-chain participant
            query = query.where(Organization.type != OrgType.ADMIN)

        orgs = self.session.exec(
            query.order_by(Organization.type, Organization.name)).all()
        return [self._to_read(o) for o in orgs]

    def _ensure_name_free(self, name: str, exclude_id: Optional[UUID] = None) -> None:
        query = select(Organization).where(Organization.name == name)
        if exclude_id:
            query = query.where(Organization.id != exclude_id)
        if self.session.exec(query).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Organization '{name}' already exists."
            )

    def create_organization(self, data: OrganizationCreate) -> Organization:
        self._ensure_name_free(data.name)

        org = Organization(**data.model_dump())
        self.session.add(org)
        self.session.commit()
        self.session.refresh(org)

        logger.info(f"Organization created: {org.id} ({org.type.value})")
        return org

    def update_organization(self, org_id: UUID, data: OrganizationUpdate) -> Organization:
        org = self.get_organization(org_id)

        if data.name is not None and data.name != org.name:
            self._ensure_name_free(data.name, exclude_id=org.id)

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(org, key, value)

        self.session.add(org)
        self.session.commit()
        self.session.refresh(org)
        return org

    def delete_organization(self, org_id: UUID) -> Organization:
        """
        Deletes an organization that has no users.

        Raises:
            HTTPException(404): Organization not found.
            HTTPException(409): Users still belong to it.
        """
        org = self.get_organization(org_id)

        if self._user_count(org.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete an organization that still has users."
            )

        self.session.delete(org)
        self.session.commit()
        logger.info(f"Organization deleted: {org_id}")
        return org
