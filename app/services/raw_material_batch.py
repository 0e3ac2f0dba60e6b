from typing import Optional
from uuid import UUID

from fastapi import BackgroundTasks, HTTPException, status
from loguru import logger
from sqlmodel import Session, select, col, func

from app.core.transitions import BATCH_TRANSITIONS, ensure_transition
from app.db.schema import (
    User, RawMaterialBatch, RawMaterialBatchStatus, CollectionEvent,
    FinishedGoodComposition, HerbSpecies, SupplyChainEventType
)
from app.models.collection import CollectionRead
from app.models.common import Page
from app.models.raw_material_batch import (
    RawMaterialBatchCreate, RawMaterialBatchUpdate, RawMaterialBatchRead,
    RawMaterialBatchTraceability
)
from app.services.pagination import paginate
from app.services.traceability import ResolvedSubject, TraceabilityPipeline


class RawMaterialBatchService:
    """
    Batches of raw herb material assembled from collection events.

    Creating a batch claims its collection events: each event's back-link
    is set to the batch in the same transaction, and an event can only be
    claimed once.
    """

    def __init__(self, session: Session, background_tasks: Optional[BackgroundTasks] = None):
        self.session = session
        self.background_tasks = background_tasks

    def get_batch(self, batch_id: UUID) -> RawMaterialBatch:
        batch = self.session.get(RawMaterialBatch, batch_id)
        if not batch:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Raw material batch not found."
            )
        return batch

    def to_read(self, batch: RawMaterialBatch) -> RawMaterialBatchRead:
        read = RawMaterialBatchRead.model_validate(batch)
        read.collection_event_ids = self.session.exec(
            select(CollectionEvent.id)
            .where(CollectionEvent.raw_material_batch_id == batch.id)
            .order_by(CollectionEvent.collection_date)
        ).all()
        return read

    def create_batch(self, user: User, data: RawMaterialBatchCreate) -> RawMaterialBatch:
        """
        Creates a batch in status CREATED and links the given collection events.

        Raises:
            HTTPException(404): If any collection event id is unknown.
            HTTPException(409): If any event already belongs to a batch.
        """
        event_ids = list(dict.fromkeys(data.collection_event_ids))

        events = self.session.exec(
            select(CollectionEvent).where(col(CollectionEvent.id).in_(event_ids))
        ).all()

        found = {e.id for e in events}
        missing = [str(i) for i in event_ids if i not in found]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Collection events not found: {', '.join(missing)}"
            )

        claimed = [str(e.id) for e in events if e.raw_material_batch_id is not None]
        if claimed:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Collection events already assigned to a batch: {', '.join(claimed)}"
            )

        try:
            # --- START ATOMIC TRANSACTION ---
            batch = RawMaterialBatch(
                **data.model_dump(exclude={"collection_event_ids"}),
                status=RawMaterialBatchStatus.CREATED,
                created_by_id=user.id,
                organization_id=user.organization_id,
            )
            self.session.add(batch)
            self.session.flush()

            for event in events:
                event.raw_material_batch_id = batch.id
                self.session.add(event)

            self.session.commit()
            self.session.refresh(batch)

        except Exception as e:
            self.session.rollback()
            logger.error(f"Raw material batch creation failed: {e}")
            raise e

        logger.info(
            f"Raw material batch {batch.id} created from {len(events)} collection events")
        return batch

    def list_batches(
        self,
        page: int = 1,
        limit: int = 10,
        herb_name: Optional[str] = None,
        batch_status: Optional[RawMaterialBatchStatus] = None,
    ) -> Page:
        query = select(RawMaterialBatch)

        if herb_name:
            query = query.where(
                func.lower(RawMaterialBatch.herb_name).like(f"%{herb_name.lower()}%"))
        if batch_status:
            query = query.where(RawMaterialBatch.status == batch_status)

        result = paginate(
            self.session, query.order_by(RawMaterialBatch.created_at.desc()), page, limit)
        result.items = [self.to_read(b) for b in result.items]
        return result

    def update_batch(self, user: User, batch_id: UUID, data: RawMaterialBatchUpdate) -> RawMaterialBatch:
        """
        Applies a partial update. A status change must be allowed by the
        batch transition table and is recorded as a PROCESSING ledger event.
        """
        batch = self.get_batch(batch_id)
        previous_status = batch.status

        if data.status is not None:
            ensure_transition("Raw material batch", BATCH_TRANSITIONS, batch.status, data.status)

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(batch, key, value)

        self.session.add(batch)
        self.session.commit()
        self.session.refresh(batch)

        if data.status is not None and data.status != previous_status:
            TraceabilityPipeline(self.session, self.background_tasks).record_event(
                handler_id=user.id,
                event_type=SupplyChainEventType.PROCESSING,
                from_location_id=batch.organization_id,
                to_location_id=user.organization_id,
                subject=ResolvedSubject(raw_material_batch_id=batch.id),
                notes=f"Batch status changed from {previous_status.value} to {data.status.value}",
                metadata={
                    "action": "BATCH_STATUS_CHANGED",
                    "previousStatus": previous_status.value,
                    "status": data.status.value,
                },
            )
            self.session.refresh(batch)

        return batch

    def delete_batch(self, batch_id: UUID) -> dict:
        """
        Deletes a batch that no finished good uses and releases its
        collection events.

        Raises:
            HTTPException(409): If the batch is part of a finished good composition.
        """
        batch = self.get_batch(batch_id)

        used = self.session.exec(
            select(FinishedGoodComposition).where(
                FinishedGoodComposition.raw_material_batch_id == batch_id)
        ).first()
        if used:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete a batch that is used in a finished good."
            )

        try:
            for event in self.session.exec(
                select(CollectionEvent).where(CollectionEvent.raw_material_batch_id == batch_id)
            ).all():
                event.raw_material_batch_id = None
                self.session.add(event)

            self.session.delete(batch)
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error(f"Raw material batch deletion failed for {batch_id}: {e}")
            raise e

        return {"message": "Raw material batch deleted.", "id": batch_id}

    def get_traceability(self, batch_id: UUID) -> RawMaterialBatchTraceability:
        batch = self.get_batch(batch_id)

        events = self.session.exec(
            select(CollectionEvent)
            .where(CollectionEvent.raw_material_batch_id == batch_id)
            .order_by(CollectionEvent.collection_date)
        ).all()

        species_names = []
        for species_id in {e.species_id for e in events if e.species_id}:
            species = self.session.get(HerbSpecies, species_id)
            if species:
                species_names.append(species.scientific_name)

        return RawMaterialBatchTraceability(
            batch=self.to_read(batch),
            collection_events=[CollectionRead.model_validate(e) for e in events],
            total_collected_quantity=sum(e.quantity for e in events),
            farmers=list(dict.fromkeys(e.farmer_id for e in events)),
            collectors=list(dict.fromkeys(e.collector_id for e in events)),
            species=sorted(species_names),
        )
