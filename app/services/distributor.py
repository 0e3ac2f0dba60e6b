import secrets
import time
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import BackgroundTasks, HTTPException, status
from loguru import logger
from sqlmodel import Session, select, func

from app.core.transitions import (
    SHIPMENT_TRANSITIONS, VERIFICATION_TRANSITIONS, ensure_transition
)
from app.db.schema import (
    User, Organization, DistributorInventory, DistributorShipment,
    DistributorShipmentItem, DistributorVerification, InventoryStatus,
    RawMaterialBatch, FinishedGood, ShipmentStatus, StockProductType,
    SupplyChainEventType, VerificationEntityType, VerificationStatus
)
from app.models.distributor import (
    InventoryItemCreate, InventoryItemUpdate, InventoryItemRead, ShipmentCreate, ShipmentItemCreate,
    ShipmentItemRead, ShipmentRead, ShipmentStatusUpdate, VerificationCreate,
    VerificationUpdate, VerificationRead,
    DistributorMetrics, DistributorAnalytics
)
from app.models.common import Page
from app.services.pagination import paginate
from app.services.traceability import ResolvedSubject, TraceabilityPipeline


VERIFICATION_DONE = (VerificationStatus.VERIFIED, VerificationStatus.REJECTED)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def generate_shipment_number() -> str:
    return f"DIST-{_epoch_ms()}-{secrets.randbelow(10000):04d}"


def generate_verification_number() -> str:
    return f"DVR-{_epoch_ms()}-{secrets.randbelow(10000):04d}"


def _subject_for(product_type: StockProductType, entity_id: UUID) -> ResolvedSubject:
    if product_type == StockProductType.FINISHED_GOOD:
        return ResolvedSubject(finished_good_id=entity_id)
    return ResolvedSubject(raw_material_batch_id=entity_id)


class DistributorService:
    """
    Warehouse stock, outbound shipments and goods verifications of a
    distributor organization. Receiving stock, creating a shipment and
    requesting a verification each leave a ledger event with a QR code.
    """

    def __init__(self, session: Session, background_tasks: Optional[BackgroundTasks] = None):
        self.session = session
        self.pipeline = TraceabilityPipeline(session, background_tasks)

    def _stock_entity(self, product_type: StockProductType, entity_id: UUID):
        """Returns the batch or finished good a stock line refers to, or raises 404."""
        table = FinishedGood if product_type == StockProductType.FINISHED_GOOD else RawMaterialBatch
        entity = self.session.get(table, entity_id)
        if not entity:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{product_type.value} {entity_id} not found."
            )
        return entity

    # ==========================================================================
    # INVENTORY
    # ==========================================================================

    def get_inventory_item(self, user: User, item_id: UUID) -> DistributorInventory:
        item = self.session.get(DistributorInventory, item_id)
        if not item or item.organization_id != user.organization_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Inventory item not found."
            )
        return item

    def list_inventory(
        self,
        user: User,
        page: int = 1,
        limit: int = 10,
        inventory_status: Optional[InventoryStatus] = None,
        product_type: Optional[StockProductType] = None,
    ) -> Page:
        query = select(DistributorInventory).where(
            DistributorInventory.organization_id == user.organization_id)
        if inventory_status:
            query = query.where(DistributorInventory.status == inventory_status)
        if product_type:
            query = query.where(DistributorInventory.product_type == product_type)

        return paginate(
            self.session, query.order_by(DistributorInventory.received_date.desc()), page, limit,
            InventoryItemRead)

    def add_inventory(self, user: User, data: InventoryItemCreate) -> DistributorInventory:
        """
        Receives stock of an existing batch or finished good.

        Raises:
            HTTPException(404): The referenced batch or finished good does not exist.
        """
        entity = self._stock_entity(data.product_type, data.entity_id)
        product_name = (
            entity.product_name if data.product_type == StockProductType.FINISHED_GOOD
            else entity.herb_name
        )

        item = DistributorInventory(
            **data.model_dump(exclude={"received_date"}),
            received_date=data.received_date or datetime.utcnow(),
            product_name=product_name,
            distributor_id=user.id,
            organization_id=user.organization_id,
        )
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)

        logger.info(f"Inventory item {item.id} received by distributor {user.id}")

        self.pipeline.record_with_qr(
            handler_id=user.id,
            event_type=SupplyChainEventType.DISTRIBUTION,
            from_location_id=entity.organization_id,
            to_location_id=user.organization_id,
            subject=_subject_for(data.product_type, data.entity_id),
            notes=f"Inventory received: {data.quantity:g} {data.unit.value} of {product_name}",
            metadata={
                "action": "INVENTORY_RECEIVED",
                "inventoryId": item.id,
                "quantity": data.quantity,
                "unit": data.unit.value,
            },
            snapshot={
                "inventoryId": item.id,
                "productName": product_name,
                "productType": data.product_type.value,
                "entityId": data.entity_id,
                "receivedDate": item.received_date,
            },
        )
        self.session.refresh(item)
        return item

    def update_inventory(self, user: User, item_id: UUID, data: InventoryItemUpdate) -> DistributorInventory:
        item = self.get_inventory_item(user, item_id)

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(item, key, value)

        if data.quantity == 0:
            item.status = InventoryStatus.OUT_OF_STOCK

        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item

    # ==========================================================================
    # SHIPMENTS
    # ==========================================================================

    def _to_shipment_read(self, shipment: DistributorShipment) -> ShipmentRead:
        read = ShipmentRead.model_validate(shipment)
        read.items = [ShipmentItemRead.model_validate(i) for i in shipment.items]
        return read

    def get_shipment(self, user: User, shipment_id: UUID) -> DistributorShipment:
        shipment = self.session.get(DistributorShipment, shipment_id)
        if not shipment or shipment.organization_id != user.organization_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Shipment not found."
            )
        return shipment

    def get_shipment_read(self, user: User, shipment_id: UUID) -> ShipmentRead:
        return self._to_shipment_read(self.get_shipment(user, shipment_id))

    def list_shipments(
        self,
        user: User,
        page: int = 1,
        limit: int = 10,
        shipment_status: Optional[ShipmentStatus] = None,
    ) -> Page:
        query = select(DistributorShipment).where(
            DistributorShipment.organization_id == user.organization_id)
        if shipment_status:
            query = query.where(DistributorShipment.status == shipment_status)

        result = paginate(
            self.session, query.order_by(DistributorShipment.created_at.desc()), page, limit)
        result.items = [self._to_shipment_read(s) for s in result.items]
        return result

    def _stock_lines(self, user: User, product_type: StockProductType, entity_id: UUID) -> List[DistributorInventory]:
        """Stock lines of an entity that still hold quantity, oldest first."""
        return self.session.exec(
            select(DistributorInventory)
            .where(
                DistributorInventory.organization_id == user.organization_id,
                DistributorInventory.product_type == product_type,
                DistributorInventory.entity_id == entity_id,
                DistributorInventory.quantity > 0,
            )
            .order_by(DistributorInventory.received_date, DistributorInventory.created_at)
        ).all()

    def _draw_stock(self, user: User, line: ShipmentItemCreate) -> None:
        """
        Takes the line's quantity from stock, first in first out. Lines that
        reach zero become OUT_OF_STOCK.

        Raises:
            HTTPException(409): The remaining stock of the entity is too small.
        """
        lines = self._stock_lines(user, line.product_type, line.entity_id)
        available = sum(stock.quantity for stock in lines)
        if available < line.quantity:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Insufficient stock for {line.product_name}: {available:g} available, {line.quantity:g} requested."
            )

        remaining = line.quantity
        for stock in lines:
            if remaining <= 0:
                break
            taken = min(stock.quantity, remaining)
            stock.quantity -= taken
            remaining -= taken
            if stock.quantity == 0:
                stock.status = InventoryStatus.OUT_OF_STOCK
            self.session.add(stock)

    def create_shipment(self, user: User, data: ShipmentCreate) -> ShipmentRead:
        """
        Creates a shipment in status PREPARING and draws its items from stock.

        Raises:
            HTTPException(404): Recipient organization unknown.
            HTTPException(409): Not enough stock for an item.
        """
        recipient = self.session.get(Organization, data.recipient_id)
        if not recipient:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Recipient organization not found."
            )

        try:
            # --- START ATOMIC TRANSACTION ---
            shipment = DistributorShipment(
                **data.model_dump(exclude={"items", "recipient_name"}),
                recipient_name=data.recipient_name or recipient.name,
                shipment_number=generate_shipment_number(),
                status=ShipmentStatus.PREPARING,
                distributor_id=user.id,
                organization_id=user.organization_id,
            )
            self.session.add(shipment)
            self.session.flush()

            for line in data.items:
                self._draw_stock(user, line)
                self.session.add(DistributorShipmentItem(
                    shipment_id=shipment.id,
                    **line.model_dump(),
                ))

            self.session.commit()
            self.session.refresh(shipment)

        except Exception as e:
            self.session.rollback()
            logger.error(f"Shipment creation failed for distributor {user.id}: {e}")
            raise e

        logger.info(f"Shipment {shipment.shipment_number} created with {len(data.items)} items")

        first = data.items[0] if data.items else None
        self.pipeline.record_with_qr(
            handler_id=user.id,
            event_type=SupplyChainEventType.DISTRIBUTION,
            from_location_id=user.organization_id,
            to_location_id=recipient.id,
            subject=_subject_for(first.product_type, first.entity_id) if first else None,
            notes=f"Shipment {shipment.shipment_number} created for {shipment.recipient_name}",
            metadata={
                "action": "SHIPMENT_CREATED",
                "shipmentId": shipment.id,
                "shipmentNumber": shipment.shipment_number,
                "itemCount": len(data.items),
            },
            snapshot={
                "shipmentId": shipment.id,
                "shipmentNumber": shipment.shipment_number,
                "recipientName": shipment.recipient_name,
                "status": shipment.status.value,
            },
        )
        self.session.refresh(shipment)
        return self._to_shipment_read(shipment)

    def update_shipment_status(self, user: User, shipment_id: UUID, data: ShipmentStatusUpdate) -> ShipmentRead:
        """
        Moves a shipment through its state machine. DELIVERED stamps
        actual_delivery. Each real change is written to the ledger.
        """
        shipment = self.get_shipment(user, shipment_id)
        previous_status = shipment.status

        ensure_transition("Shipment", SHIPMENT_TRANSITIONS, shipment.status, data.status)

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(shipment, key, value)

        if data.status == ShipmentStatus.DELIVERED and not shipment.actual_delivery:
            shipment.actual_delivery = datetime.utcnow()
        if data.status == ShipmentStatus.DISPATCHED and not shipment.shipment_date:
            shipment.shipment_date = datetime.utcnow()

        self.session.add(shipment)
        self.session.commit()
        self.session.refresh(shipment)

        if data.status != previous_status:
            first = shipment.items[0] if shipment.items else None
            self.pipeline.record_event(
                handler_id=user.id,
                event_type=SupplyChainEventType.DISTRIBUTION,
                from_location_id=shipment.organization_id,
                to_location_id=shipment.recipient_id,
                subject=_subject_for(first.product_type, first.entity_id) if first else None,
                notes=f"Shipment {shipment.shipment_number} status changed to {data.status.value}",
                metadata={
                    "action": "SHIPMENT_STATUS_UPDATE",
                    "shipmentId": shipment.id,
                    "previousStatus": previous_status.value,
                    "status": data.status.value,
                },
            )
            self.session.refresh(shipment)

        return self._to_shipment_read(shipment)

    # ==========================================================================
    # VERIFICATIONS
    # ==========================================================================

    def _verification_target(self, user: User, entity_type: VerificationEntityType, entity_id: UUID) -> ResolvedSubject:
        if entity_type == VerificationEntityType.RAW_MATERIAL_BATCH:
            self._stock_entity(StockProductType.RAW_MATERIAL_BATCH, entity_id)
            return ResolvedSubject(raw_material_batch_id=entity_id)
        if entity_type == VerificationEntityType.FINISHED_GOOD:
            self._stock_entity(StockProductType.FINISHED_GOOD, entity_id)
            return ResolvedSubject(finished_good_id=entity_id)
        if entity_type == VerificationEntityType.SHIPMENT:
            self.get_shipment(user, entity_id)
            return ResolvedSubject()

        item = self.get_inventory_item(user, entity_id)
        return _subject_for(item.product_type, item.entity_id)

    def get_verification(self, user: User, verification_id: UUID) -> DistributorVerification:
        verification = self.session.get(DistributorVerification, verification_id)
        if not verification or verification.organization_id != user.organization_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Verification not found."
            )
        return verification

    def list_verifications(
        self,
        user: User,
        page: int = 1,
        limit: int = 10,
        verification_status: Optional[VerificationStatus] = None,
    ) -> Page:
        query = select(DistributorVerification).where(
            DistributorVerification.organization_id == user.organization_id)
        if verification_status:
            query = query.where(DistributorVerification.status == verification_status)
        return paginate(
            self.session, query.order_by(DistributorVerification.created_at.desc()), page, limit,
            VerificationRead)

    def create_verification(self, user: User, data: VerificationCreate) -> DistributorVerification:
        """
        Raises:
            HTTPException(404): The entity to verify does not exist.
        """
        subject = self._verification_target(user, data.entity_type, data.entity_id)

        verification = DistributorVerification(
            **data.model_dump(),
            verification_number=generate_verification_number(),
            status=VerificationStatus.PENDING,
            distributor_id=user.id,
            organization_id=user.organization_id,
        )
        self.session.add(verification)
        self.session.commit()
        self.session.refresh(verification)

        self.pipeline.record_with_qr(
            handler_id=user.id,
            event_type=SupplyChainEventType.TESTING,
            from_location_id=user.organization_id,
            to_location_id=user.organization_id,
            subject=subject,
            notes=f"Verification {verification.verification_number} requested: {data.verification_type.value}",
            metadata={
                "action": "VERIFICATION_REQUESTED",
                "verificationId": verification.id,
                "verificationType": data.verification_type.value,
                "entityType": data.entity_type.value,
                "entityId": data.entity_id,
            },
            snapshot={
                "verificationId": verification.id,
                "verificationNumber": verification.verification_number,
                "verificationType": data.verification_type.value,
                "status": verification.status.value,
            },
        )
        self.session.refresh(verification)
        return verification

    def update_verification(self, user: User, verification_id: UUID, data: VerificationUpdate) -> DistributorVerification:
        verification = self.get_verification(user, verification_id)

        if data.status is not None:
            ensure_transition(
                "Verification", VERIFICATION_TRANSITIONS, verification.status, data.status)

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(verification, key, value)

        if data.status in VERIFICATION_DONE and not verification.verified_at:
            verification.verified_at = datetime.utcnow()

        self.session.add(verification)
        self.session.commit()
        self.session.refresh(verification)
        return verification

    # ==========================================================================
    # METRICS
    # ==========================================================================

    def _count_by_status(self, table, org_id: UUID) -> Dict[str, int]:
        rows = self.session.exec(
            select(table.status, func.count(table.id))
            .where(table.organization_id == org_id)
            .group_by(table.status)
        ).all()
        return {s.value: c for s, c in rows}

    def get_metrics(self, user: User) -> DistributorMetrics:
        org_id = user.organization_id
        inventory = self._count_by_status(DistributorInventory, org_id)
        shipments = self._count_by_status(DistributorShipment, org_id)
        verifications = self._count_by_status(DistributorVerification, org_id)

        return DistributorMetrics(
            inventory_items=sum(inventory.values()),
            low_stock_items=inventory.get(InventoryStatus.LOW_STOCK.value, 0),
            out_of_stock_items=inventory.get(InventoryStatus.OUT_OF_STOCK.value, 0),
            total_shipments=sum(shipments.values()),
            shipments_in_transit=(
                shipments.get(ShipmentStatus.DISPATCHED.value, 0)
                + shipments.get(ShipmentStatus.IN_TRANSIT.value, 0)
            ),
            delivered_shipments=shipments.get(ShipmentStatus.DELIVERED.value, 0),
            pending_verifications=verifications.get(VerificationStatus.PENDING.value, 0),
        )

    def get_analytics(self, user: User) -> DistributorAnalytics:
        org_id = user.organization_id
        shipped_value = self.session.exec(
            select(func.coalesce(func.sum(DistributorShipment.total_value), 0))
            .where(
                DistributorShipment.organization_id == org_id,
                DistributorShipment.status != ShipmentStatus.CANCELLED,
            )
        ).one()

        return DistributorAnalytics(
            shipments_by_status=self._count_by_status(DistributorShipment, org_id),
            inventory_by_status=self._count_by_status(DistributorInventory, org_id),
            verifications_by_status=self._count_by_status(DistributorVerification, org_id),
            total_shipped_value=float(shipped_value),
        )
