from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import BackgroundTasks, HTTPException, status
from fastapi.encoders import jsonable_encoder
from loguru import logger
from sqlmodel import Session, select, func, or_

from app.db.schema import (
    User, Organization, RawMaterialBatch, FinishedGood, SupplyChainEvent,
    SupplyChainEventType, QRCode, QREntityType
)
from app.models.common import Page
from app.models.supply_chain import (
    SupplyChainEventCreate, SupplyChainEventUpdate, SupplyChainEventRead,
    TraceabilityPath, SupplyChainAnalytics
)
from app.services.notary import NotaryClient, notarize, project_supply_chain_event
from app.services.pagination import paginate


class SupplyChainService:
    """
    Ledger of supply-chain events.

    Events are append-only history: once a QR code references an event it
    can no longer be edited or deleted, and later changes to the underlying
    entity are recorded as new events.

    When request background tasks are available, every new event is
    queued for notarization after it is committed.
    """

    def __init__(self, session: Session, background_tasks: Optional[BackgroundTasks] = None):
        self.session = session
        self.background_tasks = background_tasks

    def get_event(self, event_id: UUID) -> SupplyChainEvent:
        event = self.session.get(SupplyChainEvent, event_id)
        if not event:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Supply chain event not found."
            )
        return event

    def create_event(
        self,
        handler_id: UUID,
        event_type: SupplyChainEventType,
        from_location_id: UUID,
        to_location_id: UUID,
        raw_material_batch_id: Optional[UUID] = None,
        finished_good_id: Optional[UUID] = None,
        notes: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> SupplyChainEvent:
        """
        Inserts and commits exactly one ledger row.

        Callers are expected to have validated the references; any database
        error propagates to the caller.
        """
        event = SupplyChainEvent(
            event_type=event_type,
            handler_id=handler_id,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            raw_material_batch_id=raw_material_batch_id,
            finished_good_id=finished_good_id,
            notes=notes,
            event_metadata=jsonable_encoder(metadata or {}),
            timestamp=timestamp or datetime.utcnow(),
        )
        self.session.add(event)
        self.session.commit()
        self.session.refresh(event)

        logger.info(
            f"Ledger event {event.id} ({event_type.value}) recorded by {handler_id}")

        if self.background_tasks is not None:
            self.background_tasks.add_task(
                notarize, NotaryClient.SUPPLY_CHAIN_EVENT, project_supply_chain_event(event))

        return event

    def _require_organization(self, org_id: UUID, label: str) -> Organization:
        org = self.session.get(Organization, org_id)
        if not org:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{label} organization not found."
            )
        return org

    def record_event(self, user: User, data: SupplyChainEventCreate) -> SupplyChainEvent:
        """
        Manually records an event. The caller becomes the handler.

        Raises:
            HTTPException(404): If a referenced organization, batch or product is missing.
        """
        self._require_organization(data.from_location_id, "Source")
        self._require_organization(data.to_location_id, "Destination")

        if data.raw_material_batch_id and not self.session.get(RawMaterialBatch, data.raw_material_batch_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Raw material batch not found."
            )
        if data.finished_good_id and not self.session.get(FinishedGood, data.finished_good_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Finished good not found."
            )

        return self.create_event(
            handler_id=user.id,
            event_type=data.event_type,
            from_location_id=data.from_location_id,
            to_location_id=data.to_location_id,
            raw_material_batch_id=data.raw_material_batch_id,
            finished_good_id=data.finished_good_id,
            notes=data.notes,
            metadata=data.event_metadata,
            timestamp=data.timestamp,
        )

    def list_events(
        self,
        page: int = 1,
        limit: int = 10,
        event_type: Optional[SupplyChainEventType] = None,
        handler_id: Optional[UUID] = None,
        batch_id: Optional[UUID] = None,
    ) -> Page:
        query = select(SupplyChainEvent)

        if event_type:
            query = query.where(SupplyChainEvent.event_type == event_type)
        if handler_id:
            query = query.where(SupplyChainEvent.handler_id == handler_id)
        if batch_id:
            # A batch id may address either a raw batch or a finished good
            query = query.where(or_(
                SupplyChainEvent.raw_material_batch_id == batch_id,
                SupplyChainEvent.finished_good_id == batch_id
            ))

        query = query.order_by(SupplyChainEvent.timestamp.desc())
        return paginate(self.session, query, page, limit, SupplyChainEventRead)

    def get_traceability_path(self, batch_id: UUID) -> TraceabilityPath:
        events = self.session.exec(
            select(SupplyChainEvent)
            .where(or_(
                SupplyChainEvent.raw_material_batch_id == batch_id,
                SupplyChainEvent.finished_good_id == batch_id
            ))
            .order_by(SupplyChainEvent.timestamp.asc())
        ).all()

        return TraceabilityPath(
            batch_id=batch_id,
            events=[SupplyChainEventRead.model_validate(e) for e in events],
            total_events=len(events),
        )

    def _ensure_not_anchored(self, event: SupplyChainEvent) -> None:
        anchored = self.session.exec(
            select(QRCode).where(
                QRCode.entity_type == QREntityType.SUPPLY_CHAIN_EVENT,
                QRCode.entity_id == event.id
            )
        ).first()
        if anchored:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This event is referenced by a QR code and is part of the permanent record."
            )

    def update_event(self, user: User, event_id: UUID, data: SupplyChainEventUpdate) -> SupplyChainEvent:
        """
        Edits notes/metadata of an event that no QR code points at yet.

        Raises:
            HTTPException(404): Event not found.
            HTTPException(403): Caller is not the handler.
            HTTPException(409): Event is referenced by a QR code.
        """
        event = self.get_event(event_id)

        if event.handler_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the handler can edit this event."
            )
        self._ensure_not_anchored(event)

        if data.to_location_id:
            self._require_organization(data.to_location_id, "Destination")

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(event, key, value)

        self.session.add(event)
        self.session.commit()
        self.session.refresh(event)
        return event

    def delete_event(self, user: User, event_id: UUID) -> dict:
        event = self.get_event(event_id)

        if event.handler_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the handler can delete this event."
            )
        self._ensure_not_anchored(event)

        self.session.delete(event)
        self.session.commit()
        logger.info(f"Ledger event {event_id} deleted by {user.id}")
        return {"message": "Supply chain event deleted.", "id": event_id}

    def get_analytics(self, handler_id: Optional[UUID] = None) -> SupplyChainAnalytics:
        base = select(SupplyChainEvent.event_type, func.count(SupplyChainEvent.id))
        if handler_id:
            base = base.where(SupplyChainEvent.handler_id == handler_id)
        rows = self.session.exec(base.group_by(SupplyChainEvent.event_type)).all()

        by_type = {event_type.value: count for event_type, count in rows}

        return SupplyChainAnalytics(
            total_events=sum(by_type.values()),
            by_event_type=by_type,
            average_processing_time_hours=self._average_processing_hours(handler_id),
        )

    def _average_processing_hours(self, handler_id: Optional[UUID]) -> Optional[float]:
        """Mean gap between consecutive PROCESSING events, in hours."""
        query = select(SupplyChainEvent.timestamp).where(
            SupplyChainEvent.event_type == SupplyChainEventType.PROCESSING)
        if handler_id:
            query = query.where(SupplyChainEvent.handler_id == handler_id)
        timestamps: List[datetime] = list(
            self.session.exec(query.order_by(SupplyChainEvent.timestamp.asc())).all())

        if len(timestamps) < 2:
            return None

        gaps = [
            (later - earlier).total_seconds()
            for earlier, later in zip(timestamps, timestamps[1:])
        ]
        return round(sum(gaps) / len(gaps) / 3600, 2)
