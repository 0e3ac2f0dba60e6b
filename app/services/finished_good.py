from typing import List, Optional
from uuid import UUID

from fastapi import BackgroundTasks, HTTPException, status
from loguru import logger
from sqlmodel import Session, select, col, func, or_

from app.db.schema import (
    User, FinishedGood, FinishedGoodComposition, FinishedGoodProductType,
    RawMaterialBatch, CollectionEvent
)
from app.models.common import Page
from app.models.finished_good import (
    FinishedGoodCreate, FinishedGoodUpdate, FinishedGoodRead, CompositionRead,
    FinishedGoodTraceability, SourceBatchTrace, FinishedGoodAnalytics
)
from app.services.notary import (
    NotaryClient, NotaryProjectionError, notarize, project_finished_good
)
from app.services.pagination import paginate


class FinishedGoodService:
    """
    Manufactured products and the raw-material batches they are composed of.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_finished_good(self, good_id: UUID) -> FinishedGood:
        good = self.session.get(FinishedGood, good_id)
        if not good:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Finished good not found."
            )
        return good

    def to_read(self, good: FinishedGood) -> FinishedGoodRead:
        read = FinishedGoodRead.model_validate(good)
        composition = []
        for row in good.compositions:
            item = CompositionRead.model_validate(row)
            item.herb_name = row.raw_material_batch.herb_name if row.raw_material_batch else None
            composition.append(item)
        read.composition = composition
        return read

    def _ensure_batch_number_free(self, batch_number: str, exclude_id: Optional[UUID] = None) -> None:
        query = select(FinishedGood).where(FinishedGood.batch_number == batch_number)
        if exclude_id:
            query = query.where(FinishedGood.id != exclude_id)
        if self.session.exec(query).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Batch number '{batch_number}' is already in use."
            )

    def _source_collection_event_ids(self, batch_ids: List[UUID]) -> List[UUID]:
        if not batch_ids:
            return []
        return self.session.exec(
            select(CollectionEvent.id)
            .where(col(CollectionEvent.raw_material_batch_id).in_(batch_ids))
            .order_by(CollectionEvent.collection_date)
        ).all()

    def create_finished_good(
        self,
        user: User,
        data: FinishedGoodCreate,
        background_tasks: BackgroundTasks
    ) -> FinishedGoodRead:
        """
        Creates a product together with its composition rows.

        The notary submission carries the ids of every collection event that
        fed the source batches. A product without a batch number is kept
        locally and not notarized.

        Raises:
            HTTPException(404): A referenced raw material batch does not exist.
            HTTPException(409): The batch number is already in use.
        """
        if data.batch_number:
            self._ensure_batch_number_free(data.batch_number)

        batch_ids = [c.raw_material_batch_id for c in data.composition]
        found = set(self.session.exec(
            select(RawMaterialBatch.id).where(col(RawMaterialBatch.id).in_(batch_ids))
        ).all())
        missing = [str(i) for i in batch_ids if i not in found]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Raw material batches not found: {', '.join(missing)}"
            )

        try:
            # --- START ATOMIC TRANSACTION ---
            good = FinishedGood(
                **data.model_dump(exclude={"composition"}),
                manufacturer_id=user.id,
                organization_id=user.organization_id,
            )
            self.session.add(good)
            self.session.flush()

            for item in data.composition:
                self.session.add(FinishedGoodComposition(
                    finished_good_id=good.id,
                    **item.model_dump(),
                ))

            self.session.commit()
            self.session.refresh(good)

        except Exception as e:
            self.session.rollback()
            logger.error(f"Finished good creation failed for {user.id}: {e}")
            raise e

        logger.info(
            f"Finished good {good.id} created with {len(data.composition)} source batches")

        try:
            payload = project_finished_good(good, self._source_collection_event_ids(batch_ids))
            background_tasks.add_task(notarize, NotaryClient.FINISHED_GOOD, payload)
        except NotaryProjectionError as e:
            logger.warning(f"Finished good {good.id} not notarized: {e}")

        return self.to_read(good)

    def list_finished_goods(
        self,
        page: int = 1,
        limit: int = 10,
        product_type: Optional[FinishedGoodProductType] = None,
        search: Optional[str] = None,
    ) -> Page:
        query = select(FinishedGood)
        if product_type:
            query = query.where(FinishedGood.product_type == product_type)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(or_(
                func.lower(FinishedGood.product_name).like(pattern),
                func.lower(FinishedGood.batch_number).like(pattern),
            ))

        result = paginate(
            self.session, query.order_by(FinishedGood.created_at.desc()), page, limit)
        result.items = [self.to_read(g) for g in result.items]
        return result

    def update_finished_good(self, good_id: UUID, data: FinishedGoodUpdate) -> FinishedGoodRead:
        good = self.get_finished_good(good_id)

        if data.batch_number and data.batch_number != good.batch_number:
            self._ensure_batch_number_free(data.batch_number, exclude_id=good.id)

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(good, key, value)

        self.session.add(good)
        self.session.commit()
        self.session.refresh(good)
        return self.to_read(good)

    def delete_finished_good(self, good_id: UUID) -> dict:
        good = self.get_finished_good(good_id)

        try:
            for row in list(good.compositions):
                self.session.delete(row)
            self.session.flush()

            self.session.delete(good)
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error(f"Finished good deletion failed for {good_id}: {e}")
            raise e

        return {"message": "Finished good deleted.", "id": good_id}

    def get_traceability(self, good_id: UUID) -> FinishedGoodTraceability:
        """
        Walks composition → raw material batch → collection events.
        """
        good = self.get_finished_good(good_id)

        sources = []
        all_farmers = []
        for row in good.compositions:
            batch = row.raw_material_batch
            events = self.session.exec(
                select(CollectionEvent)
                .where(CollectionEvent.raw_material_batch_id == row.raw_material_batch_id)
                .order_by(CollectionEvent.collection_date)
            ).all()
            farmers = list(dict.fromkeys(e.farmer_id for e in events))
            all_farmers.extend(farmers)

            sources.append(SourceBatchTrace(
                raw_material_batch_id=row.raw_material_batch_id,
                herb_name=batch.herb_name if batch else "",
                percentage=row.percentage,
                quantity_used=row.quantity_used,
                collection_event_ids=[e.id for e in events],
                farmer_ids=farmers,
            ))

        return FinishedGoodTraceability(
            finished_good=self.to_read(good),
            sources=sources,
            total_percentage=sum(s.percentage for s in sources),
            herbs=sorted({s.herb_name for s in sources if s.herb_name}),
            farmer_ids=list(dict.fromkeys(all_farmers)),
        )

    def get_analytics(self) -> FinishedGoodAnalytics:
        type_rows = self.session.exec(
            select(FinishedGood.product_type, func.count(FinishedGood.id))
            .group_by(FinishedGood.product_type)
        ).all()
        unit_rows = self.session.exec(
            select(FinishedGood.unit, func.coalesce(func.sum(FinishedGood.quantity), 0))
            .group_by(FinishedGood.unit)
        ).all()

        by_type = {t.value: count for t, count in type_rows}
        return FinishedGoodAnalytics(
            total_products=sum(by_type.values()),
            by_product_type=by_type,
            total_quantity_by_unit={u.value: float(q) for u, q in unit_rows},
        )
