from datetime import datetime
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from loguru import logger
from sqlmodel import Session, select, func

from app.db.schema import (
    User, UserRole, QRCode, QREntityType, RawMaterialBatch, FinishedGood,
    SupplyChainEvent, LabTest, Certificate
)
from app.models.common import Page
from app.models.qr_code import (
    QRCodeCreate, QRCodeUpdate, QRCodeRead, QRScanResult, QRAnalytics
)
from app.services.finished_good import FinishedGoodService
from app.services.pagination import paginate
from app.services.traceability import generate_qr_hash
from app.utils.qr import render_qr_png, render_qr_svg, scan_url


ENTITY_TABLES = {
    QREntityType.RAW_MATERIAL_BATCH: RawMaterialBatch,
    QREntityType.FINISHED_GOOD: FinishedGood,
    QREntityType.SUPPLY_CHAIN_EVENT: SupplyChainEvent,
    QREntityType.LAB_TEST: LabTest,
    QREntityType.CERTIFICATE: Certificate,
}

IMAGE_FORMATS = {
    "png": "image/png",
    "svg": "image/svg+xml",
}


class QRCodeService:
    """
    Scannable codes and the public scan endpoint.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_qr_code(self, qr_id: UUID) -> QRCode:
        qr = self.session.get(QRCode, qr_id)
        if not qr:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="QR code not found."
            )
        return qr

    def _load_entity(self, entity_type: QREntityType, entity_id: UUID):
        return self.session.get(ENTITY_TABLES[entity_type], entity_id)

    def _ensure_can_modify(self, user: User, qr: QRCode) -> None:
        if qr.generated_by_id != user.id and user.role not in (UserRole.ADMIN, UserRole.SUPER_ADMIN):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the creator of a QR code can modify it."
            )

    def generate(self, user: User, data: QRCodeCreate) -> QRCode:
        """
        Raises:
            HTTPException(404): The addressed entity does not exist.
        """
        if not self._load_entity(data.entity_type, data.entity_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{data.entity_type.value} {data.entity_id} not found."
            )

        qr = QRCode(
            qr_hash=generate_qr_hash(),
            entity_type=data.entity_type,
            entity_id=data.entity_id,
            generated_by_id=user.id,
            custom_data=jsonable_encoder(data.custom_data),
        )
        self.session.add(qr)
        self.session.commit()
        self.session.refresh(qr)

        logger.info(f"QR {qr.qr_hash} generated for {qr.entity_type.value} {qr.entity_id}")
        return qr

    def list_mine(
        self,
        user: User,
        page: int = 1,
        limit: int = 10,
        entity_type: Optional[QREntityType] = None
    ) -> Page:
        query = select(QRCode).where(QRCode.generated_by_id == user.id)
        if entity_type:
            query = query.where(QRCode.entity_type == entity_type)
        return paginate(
            self.session, query.order_by(QRCode.created_at.desc()), page, limit, QRCodeRead)

    def scan(self, qr_hash: str) -> QRScanResult:
        """
        Public lookup behind a printed code. Counts the scan and returns the
        live entity with its immediate context.

        Raises:
            HTTPException(404): Unknown or deactivated code.
        """
        qr = self.session.exec(select(QRCode).where(QRCode.qr_hash == qr_hash)).first()
        if not qr or not qr.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="QR code not found or inactive."
            )

        qr.scan_count += 1
        qr.last_scanned_at = datetime.utcnow()
        self.session.add(qr)
        self.session.commit()
        self.session.refresh(qr)

        entity = self._load_entity(qr.entity_type, qr.entity_id)
        if entity is None:
            logger.warning(f"QR {qr.qr_hash} addresses missing {qr.entity_type.value} {qr.entity_id}")

        return QRScanResult(
            qr_code=QRCodeRead.model_validate(qr),
            entity_type=qr.entity_type,
            entity_id=qr.entity_id,
            entity=jsonable_encoder(entity) if entity is not None else None,
            related=self._related(qr.entity_type, entity) if entity is not None else {},
        )

    def _related(self, entity_type: QREntityType, entity) -> Dict[str, Any]:
        if entity_type == QREntityType.SUPPLY_CHAIN_EVENT:
            related: Dict[str, Any] = {}
            if entity.raw_material_batch_id:
                related["raw_material_batch"] = self.session.get(
                    RawMaterialBatch, entity.raw_material_batch_id)
            if entity.finished_good_id:
                related["finished_good"] = self.session.get(FinishedGood, entity.finished_good_id)
            related["lab_tests"] = self.session.exec(
                select(LabTest).where(LabTest.supply_chain_event_id == entity.id)
            ).all()
            return jsonable_encoder(related)

        if entity_type == QREntityType.FINISHED_GOOD:
            trace = FinishedGoodService(self.session).get_traceability(entity.id)
            return {"traceability": jsonable_encoder(trace)}

        if entity_type == QREntityType.LAB_TEST:
            return {"certificates": jsonable_encoder(entity.certificates)}

        return {}

    def render_image(self, qr_id: UUID, image_format: str = "png") -> Tuple[bytes, str]:
        """
        Renders the scan URL of the code as an image.

        Raises:
            HTTPException(400): Unsupported format.
        """
        if image_format not in IMAGE_FORMATS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unsupported image format '{image_format}'. Use png or svg."
            )

        qr = self.get_qr_code(qr_id)
        data = scan_url(qr.qr_hash)
        content = render_qr_png(data) if image_format == "png" else render_qr_svg(data)
        return content, IMAGE_FORMATS[image_format]

    def update(self, user: User, qr_id: UUID, data: QRCodeUpdate) -> QRCode:
        qr = self.get_qr_code(qr_id)
        self._ensure_can_modify(user, qr)

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(qr, key, jsonable_encoder(value) if key == "custom_data" else value)

        self.session.add(qr)
        self.session.commit()
        self.session.refresh(qr)
        return qr

    def delete(self, user: User, qr_id: UUID) -> dict:
        qr = self.get_qr_code(qr_id)
        self._ensure_can_modify(user, qr)

        self.session.delete(qr)
        self.session.commit()
        return {"message": "QR code deleted.", "id": qr_id}

    def get_analytics(self, user: User) -> QRAnalytics:
        mine = QRCode.generated_by_id == user.id

        total = self.session.exec(select(func.count(QRCode.id)).where(mine)).one()
        active = self.session.exec(
            select(func.count(QRCode.id)).where(mine, QRCode.is_active == True)).one()
        scans = self.session.exec(
            select(func.coalesce(func.sum(QRCode.scan_count), 0)).where(mine)).one()
        type_rows = self.session.exec(
            select(QRCode.entity_type, func.count(QRCode.id)).where(mine).group_by(QRCode.entity_type)
        ).all()
        top = self.session.exec(
            select(QRCode).where(mine).order_by(QRCode.scan_count.desc()).limit(5)
        ).all()

        return QRAnalytics(
            total_codes=total,
            active_codes=active,
            total_scans=int(scans),
            by_entity_type={t.value: c for t, c in type_rows},
            most_scanned=[QRCodeRead.model_validate(q) for q in top],
        )
