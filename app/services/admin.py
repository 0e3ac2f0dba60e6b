from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import BackgroundTasks, HTTPException, status
from loguru import logger
from sqlmodel import Session, select, func, or_

from app.core.audit import _perform_admin_log
from app.db.schema import (
    User, UserRole, OrgType, Organization, RawMaterialBatch, FinishedGood, LabTest,
    Certificate, QRCode, SupplyChainEvent, SupplyChainEventType, SystemAlert,
    AdminAction, AdminActionType
)
from app.models.admin import AlertCreate, AlertRead, AdminActionRead, DashboardStats
from app.models.common import Page
from app.models.supply_chain import SupplyChainEventRead
from app.models.user import AdminCreate, UserRead, UserRoleUpdate, UserStatusUpdate
from app.services.pagination import paginate
from app.services.user import UserService


class AdminService:
    """
    Platform administration: users, alerts and the admin action log.

    Every mutation is recorded as an AdminAction by a background task so
    the audit write never delays or fails the request.
    """

    def __init__(self, session: Session):
        self.session = session

    def _count(self, table) -> int:
        return self.session.exec(select(func.count(table.id))).one()

    def log_action(
        self,
        background_tasks: BackgroundTasks,
        admin: User,
        action_type: AdminActionType,
        target_type: str,
        target_id: UUID,
        description: str,
        details: Optional[dict] = None,
        ip_address: Optional[str] = None,
    ) -> None:
        background_tasks.add_task(
            _perform_admin_log,
            admin_id=admin.id,
            action_type=action_type,
            target_type=target_type,
            target_id=target_id,
            description=description,
            details=details,
            ip_address=ip_address,
        )

    def get_dashboard(self) -> DashboardStats:
        org_rows = self.session.exec(
            select(Organization.type, func.count(Organization.id)).group_by(Organization.type)
        ).all()
        recent_users = self.session.exec(
            select(User).order_by(User.created_at.desc()).limit(5)
        ).all()
        open_alerts = self.session.exec(
            select(SystemAlert)
            .where(SystemAlert.is_resolved == False)
            .order_by(SystemAlert.created_at.desc())
            .limit(5)
        ).all()

        return DashboardStats(
            total_users=self._count(User),
            total_organizations=self._count(Organization),
            total_raw_material_batches=self._count(RawMaterialBatch),
            total_finished_goods=self._count(FinishedGood),
            total_lab_tests=self._count(LabTest),
            total_certificates=self._count(Certificate),
            total_qr_codes=self._count(QRCode),
            total_supply_chain_events=self._count(SupplyChainEvent),
            organizations_by_type={t.value: c for t, c in org_rows},
            recent_users=[UserRead.model_validate(u) for u in recent_users],
            open_alerts=[AlertRead.model_validate(a) for a in open_alerts],
        )

    # ==========================================================================
    # USERS
    # ==========================================================================

    def get_user(self, user_id: UUID) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found."
            )
        return user

    def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        role: Optional[UserRole] = None,
        org_type: Optional[OrgType] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Page:
        query = select(User)
        if role:
            query = query.where(User.role == role)
        if org_type:
            query = query.where(User.org_type == org_type)
        if is_active is not None:
            query = query.where(User.is_active == is_active)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(or_(
                func.lower(User.email).like(pattern),
                func.lower(User.first_name).like(pattern),
                func.lower(User.last_name).like(pattern),
            ))

        return paginate(self.session, query.order_by(User.created_at.desc()), page, limit, UserRead)

    def update_user_status(
        self,
        admin: User,
        user_id: UUID,
        data: UserStatusUpdate,
        background_tasks: BackgroundTasks,
        ip_address: Optional[str] = None,
    ) -> User:
        """
        Activates, deactivates or verifies a user.

        Raises:
            HTTPException(400): An admin tried to deactivate themselves.
        """
        user = self.get_user(user_id)

        if user.id == admin.id and data.is_active is False:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot deactivate your own account."
            )

        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            setattr(user, key, value)

        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)

        if "is_active" in changes:
            action = AdminActionType.USER_ACTIVATED if user.is_active else AdminActionType.USER_DEACTIVATED
            self.log_action(
                background_tasks, admin, action, "User", user.id,
                f"User {user.email} {'activated' if user.is_active else 'deactivated'}",
                changes, ip_address,
            )
        if changes.get("is_verified"):
            self.log_action(
                background_tasks, admin, AdminActionType.USER_VERIFIED, "User", user.id,
                f"User {user.email} verified", changes, ip_address,
            )

        logger.info(f"Admin {admin.id} updated status of user {user.id}: {changes}")
        return user

    def update_user_role(
        self,
        admin: User,
        user_id: UUID,
        data: UserRoleUpdate,
        background_tasks: BackgroundTasks,
        ip_address: Optional[str] = None,
    ) -> User:
        user = self.get_user(user_id)

        if user.id == admin.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot change your own role."
            )

        previous_role = user.role
        user.role = data.role
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)

        self.log_action(
            background_tasks, admin, AdminActionType.USER_ROLE_CHANGED, "User", user.id,
            f"Role of {user.email} changed from {previous_role.value} to {data.role.value}",
            {"previous_role": previous_role.value, "role": data.role.value},
            ip_address,
        )
        return user

    def create_admin(
        self,
        admin: User,
        data: AdminCreate,
        background_tasks: BackgroundTasks,
        ip_address: Optional[str] = None,
    ) -> User:
        user = UserService(self.session).create_admin(data)

        self.log_action(
            background_tasks, admin, AdminActionType.USER_CREATED, "User", user.id,
            f"Administrator {user.email} created", {"role": user.role.value}, ip_address,
        )
        return user

    def list_supply_chain_events(
        self,
        page: int = 1,
        limit: int = 10,
        event_type: Optional[SupplyChainEventType] = None,
    ) -> Page:
        query = select(SupplyChainEvent)
        if event_type:
            query = query.where(SupplyChainEvent.event_type == event_type)
        return paginate(
            self.session, query.order_by(SupplyChainEvent.timestamp.desc()), page, limit,
            SupplyChainEventRead)

    # ==========================================================================
    # ALERTS & AUDIT LOG
    # ==========================================================================

    def list_alerts(self, page: int = 1, limit: int = 10, is_resolved: Optional[bool] = None) -> Page:
        query = select(SystemAlert)
        if is_resolved is not None:
            query = query.where(SystemAlert.is_resolved == is_resolved)
        return paginate(
            self.session, query.order_by(SystemAlert.created_at.desc()), page, limit, AlertRead)

    def create_alert(self, data: AlertCreate) -> SystemAlert:
        alert = SystemAlert(**data.model_dump())
        self.session.add(alert)
        self.session.commit()
        self.session.refresh(alert)

        logger.warning(f"System alert raised [{alert.severity.value}] {alert.title}")
        return alert

    def resolve_alert(
        self,
        admin: User,
        alert_id: UUID,
        background_tasks: BackgroundTasks,
        ip_address: Optional[str] = None,
    ) -> SystemAlert:
        alert = self.session.get(SystemAlert, alert_id)
        if not alert:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Alert not found."
            )
        if alert.is_resolved:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Alert is already resolved."
            )

        alert.is_resolved = True
        alert.resolved_by_id = admin.id
        alert.resolved_at = datetime.utcnow()
        self.session.add(alert)
        self.session.commit()
        self.session.refresh(alert)

        self.log_action(
            background_tasks, admin, AdminActionType.ALERT_RESOLVED, "SystemAlert", alert.id,
            f"Alert '{alert.title}' resolved", ip_address=ip_address,
        )
        return alert

    def list_actions(
        self,
        page: int = 1,
        limit: int = 10,
        action_type: Optional[AdminActionType] = None,
        admin_id: Optional[UUID] = None,
    ) -> Page:
        query = select(AdminAction)
        if action_type:
            query = query.where(AdminAction.action_type == action_type)
        if admin_id:
            query = query.where(AdminAction.admin_id == admin_id)
        return paginate(
            self.session, query.order_by(AdminAction.timestamp.desc()), page, limit, AdminActionRead)
