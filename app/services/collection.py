import json
from datetime import datetime
from typing import List
from uuid import UUID

from fastapi import BackgroundTasks, HTTPException, status
from loguru import logger
from sqlmodel import Session, select

from app.db.schema import (
    User, CollectionEvent, HerbSpecies, Document, DocumentType, QuantityUnit
)
from app.models.collection import CollectionCreate, CollectionRead
from app.models.common import Page
from app.services.notary import NotaryClient, notarize, project_collection_event
from app.services.pagination import paginate


class CollectionService:
    """
    Field harvests recorded by farmers.
    """

    def __init__(self, session: Session):
        self.session = session

    def _to_read(self, event: CollectionEvent) -> CollectionRead:
        read = CollectionRead.model_validate(event)
        if event.species_id:
            species = self.session.get(HerbSpecies, event.species_id)
            read.species_name = species.common_name if species else None
        return read

    def get_collection(self, event_id: UUID) -> CollectionEvent:
        event = self.session.get(CollectionEvent, event_id)
        if not event:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Collection event not found."
            )
        return event

    def get_collection_read(self, event_id: UUID) -> CollectionRead:
        return self._to_read(self.get_collection(event_id))

    def create_collection(
        self,
        user: User,
        data: CollectionCreate,
        background_tasks: BackgroundTasks
    ) -> CollectionRead:
        """
        Records a harvest and, when a photo URL is supplied, a PHOTO document
        in the same transaction. The notary submission is queued afterwards.

        Raises:
            HTTPException(404): If the species id is unknown.
        """
        if data.species_id and not self.session.get(HerbSpecies, data.species_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Species not found."
            )

        photo_url = str(data.photo_url) if data.photo_url else None

        try:
            # --- START ATOMIC TRANSACTION ---
            event = CollectionEvent(
                collector_id=user.id,
                farmer_id=user.id,
                species_id=data.species_id,
                quantity=data.quantity_kg,
                unit=QuantityUnit.KG,
                latitude=data.location.latitude,
                longitude=data.location.longitude,
                location=data.location.model_dump(),
                quality_notes=json.dumps(data.initial_quality_metrics) if data.initial_quality_metrics else None,
                notes=data.notes,
                photo_url=photo_url,
                collection_date=data.collection_date or datetime.utcnow(),
            )
            self.session.add(event)
            self.session.flush()

            if photo_url:
                photo = Document(
                    file_name=photo_url.rsplit("/", 1)[-1] or "photo",
                    original_name=photo_url.rsplit("/", 1)[-1] or "photo",
                    file_url=photo_url,
                    file_size=0,
                    document_type=DocumentType.PHOTO,
                    description="Collection photo",
                    uploaded_by_id=user.id,
                    collection_event_id=event.id,
                )
                self.session.add(photo)

            self.session.commit()
            self.session.refresh(event)

        except Exception as e:
            self.session.rollback()
            logger.error(f"Collection event creation failed for {user.id}: {e}")
            raise e

        logger.info(f"Collection event {event.id} recorded by farmer {user.id}")

        background_tasks.add_task(
            notarize,
            NotaryClient.COLLECTION_EVENT,
            project_collection_event(event),
            (event.latitude, event.longitude),
        )

        return self._to_read(event)

    def list_farmer_collections(self, user: User) -> List[CollectionRead]:
        events = self.session.exec(
            select(CollectionEvent)
            .where(CollectionEvent.farmer_id == user.id)
            .order_by(CollectionEvent.collection_date.desc())
        ).all()
        return [self._to_read(e) for e in events]

    def list_collections(self, page: int = 1, limit: int = 10, unbatched_only: bool = False) -> Page:
        """All collection events, optionally only those not yet rolled into a batch."""
        query = select(CollectionEvent)
        if unbatched_only:
            query = query.where(CollectionEvent.raw_material_batch_id == None)
        query = query.order_by(CollectionEvent.collection_date.desc())

        result = paginate(self.session, query, page, limit)
        result.items = [self._to_read(e) for e in result.items]
        return result
