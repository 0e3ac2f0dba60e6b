import secrets
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from fastapi import BackgroundTasks, HTTPException, status
from fastapi.encoders import jsonable_encoder
from loguru import logger
from sqlmodel import Session, SQLModel, select

from app.core.config import settings
from app.db.schema import (
    FinishedGood, QRCode, QREntityType, RawMaterialBatch, SupplyChainEvent,
    SupplyChainEventType
)
from app.models.qr_code import QRSnapshot
from app.services.supply_chain import SupplyChainService


def generate_qr_hash() -> str:
    """16 random bytes, hex encoded."""
    return secrets.token_hex(16)


def _parse_uuid(value: Any) -> Optional[UUID]:
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value).strip())
    except ValueError:
        return None


class ResolvedSubject(SQLModel):
    """
    The single batch or finished good an action is about. At most one of
    the two ids is set.
    """
    raw_material_batch_id: Optional[UUID] = None
    finished_good_id: Optional[UUID] = None
    resolved_by: str = "none"


class TraceabilityPipeline:
    """
    Links real-world actions into the ledger.

    Three steps, used together or separately by the registries:

    1. `resolve_subject` turns weak client references (ids, typed batch
       numbers, scanned QR payloads) into one foreign key.
    2. `record_event` writes one SupplyChainEvent.
    3. `issue_qr` writes a QRCode that points at that event and carries a
       snapshot of the business fields.

    Steps 2 and 3 are enrichment. They commit on their own, after the
    primary entity, and on failure they roll back, log and return None so
    the caller's request still succeeds.
    """

    def __init__(self, session: Session, background_tasks: Optional[BackgroundTasks] = None):
        self.session = session
        self.ledger = SupplyChainService(session, background_tasks)

    # ==========================================================================
    # ENTITY RESOLUTION
    # ==========================================================================

    def resolve_subject(
        self,
        finished_good_id: Optional[UUID] = None,
        batch_id: Optional[UUID] = None,
        batch_number: Optional[str] = None,
        qr_snapshot: Optional[QRSnapshot] = None,
    ) -> ResolvedSubject:
        """
        Resolution order:
        1. A QR snapshot addressing a FINISHED_GOOD wins over everything else.
        2. Explicit finished good id, then explicit raw batch id (must exist).
        3. A batch number: as a UUID it is looked up in raw batches then
           finished goods; otherwise it is matched against finished good
           batch numbers.
        Nothing matching is not an error; the subject is simply left empty.
        """
        snapshot_target = self._snapshot_finished_good(qr_snapshot)
        if snapshot_target:
            return ResolvedSubject(finished_good_id=snapshot_target, resolved_by="qr")

        if finished_good_id:
            if not self.session.get(FinishedGood, finished_good_id):
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Finished good not found."
                )
            return ResolvedSubject(finished_good_id=finished_good_id, resolved_by="explicit")

        if batch_id:
            if not self.session.get(RawMaterialBatch, batch_id):
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Raw material batch not found."
                )
            return ResolvedSubject(raw_material_batch_id=batch_id, resolved_by="explicit")

        if batch_number:
            return self._resolve_batch_number(batch_number)

        return ResolvedSubject()

    def _resolve_batch_number(self, batch_number: str) -> ResolvedSubject:
        as_uuid = _parse_uuid(batch_number)
        if as_uuid:
            if self.session.get(RawMaterialBatch, as_uuid):
                return ResolvedSubject(raw_material_batch_id=as_uuid, resolved_by="batch_number")
            if self.session.get(FinishedGood, as_uuid):
                return ResolvedSubject(finished_good_id=as_uuid, resolved_by="batch_number")
            return ResolvedSubject()

        good = self.session.exec(
            select(FinishedGood).where(FinishedGood.batch_number == batch_number.strip())
        ).first()
        if good:
            return ResolvedSubject(finished_good_id=good.id, resolved_by="batch_number")

        logger.debug(f"Batch reference '{batch_number}' did not resolve to any entity")
        return ResolvedSubject()

    def _snapshot_finished_good(self, snapshot: Optional[QRSnapshot]) -> Optional[UUID]:
        if not snapshot or snapshot.entity_type != QREntityType.FINISHED_GOOD.value:
            return None

        target = _parse_uuid(snapshot.entity_id)
        if not target:
            return None

        if not settings.verify_qr_snapshots:
            return target

        if self._snapshot_is_genuine(snapshot, target):
            return target

        logger.warning(
            f"Ignoring unverifiable QR snapshot for finished good {target} (hash={snapshot.qr_hash})")
        return None

    def _snapshot_is_genuine(self, snapshot: QRSnapshot, target: UUID) -> bool:
        """
        A snapshot is genuine when its hash belongs to an active QR code that
        addresses the same finished good (directly or through its ledger
        event), and the finished good still exists.
        """
        if not snapshot.qr_hash:
            return False

        qr = self.session.exec(
            select(QRCode).where(QRCode.qr_hash == snapshot.qr_hash, QRCode.is_active == True)
        ).first()
        if not qr:
            return False

        if qr.entity_type == QREntityType.FINISHED_GOOD:
            points_at_target = qr.entity_id == target
        elif qr.entity_type == QREntityType.SUPPLY_CHAIN_EVENT:
            event = self.session.get(SupplyChainEvent, qr.entity_id)
            points_at_target = bool(event and event.finished_good_id == target)
        else:
            points_at_target = False

        return points_at_target and self.session.get(FinishedGood, target) is not None

    # ==========================================================================
    # LEDGER + QR (BEST EFFORT)
    # ==========================================================================

    def record_event(
        self,
        handler_id: UUID,
        event_type: SupplyChainEventType,
        from_location_id: UUID,
        to_location_id: UUID,
        subject: Optional[ResolvedSubject] = None,
        notes: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[SupplyChainEvent]:
        subject = subject or ResolvedSubject()
        try:
            return self.ledger.create_event(
                handler_id=handler_id,
                event_type=event_type,
                from_location_id=from_location_id,
                to_location_id=to_location_id,
                raw_material_batch_id=subject.raw_material_batch_id,
                finished_good_id=subject.finished_good_id,
                notes=notes,
                metadata=metadata,
            )
        except Exception as e:
            self.session.rollback()
            logger.error(
                f"Ledger event ({event_type.value}) for handler {handler_id} not recorded: {e}")
            return None

    def issue_qr(
        self,
        event: SupplyChainEvent,
        generated_by_id: UUID,
        snapshot: Optional[Dict[str, Any]] = None,
    ) -> Optional[QRCode]:
        try:
            qr = QRCode(
                qr_hash=generate_qr_hash(),
                entity_type=QREntityType.SUPPLY_CHAIN_EVENT,
                entity_id=event.id,
                generated_by_id=generated_by_id,
                custom_data=jsonable_encoder(snapshot or {}),
            )
            self.session.add(qr)
            self.session.commit()
            self.session.refresh(qr)

            logger.info(f"QR {qr.qr_hash} issued for ledger event {event.id}")
            return qr
        except Exception as e:
            self.session.rollback()
            logger.error(f"QR code for ledger event {event.id} not issued: {e}")
            return None

    def record_with_qr(
        self,
        handler_id: UUID,
        event_type: SupplyChainEventType,
        from_location_id: UUID,
        to_location_id: UUID,
        subject: Optional[ResolvedSubject] = None,
        notes: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        snapshot: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Optional[SupplyChainEvent], Optional[QRCode]]:
        """Ledger event followed by its QR code; the QR is skipped if the event failed."""
        event = self.record_event(
            handler_id=handler_id,
            event_type=event_type,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            subject=subject,
            notes=notes,
            metadata=metadata,
        )
        if not event:
            return None, None

        return event, self.issue_qr(event, handler_id, snapshot)
