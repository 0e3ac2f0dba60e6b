import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status

from app.core.dependencies import get_current_user, get_qr_code_service
from app.db.schema import QREntityType, User
from app.models.common import MessageRead, Page
from app.models.qr_code import (
    QRAnalytics, QRCodeCreate, QRCodeRead, QRCodeUpdate, QRScanResult
)
from app.services.qr_code import QRCodeService


router = APIRouter()


@router.post(
    "/",
    response_model=QRCodeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a QR code for an entity"
)
def generate_qr_code(
    data: QRCodeCreate,
    current_user: User = Depends(get_current_user),
    service: QRCodeService = Depends(get_qr_code_service)
):
    return service.generate(current_user, data)


@router.get(
    "/",
    response_model=Page[QRCodeRead],
    summary="My QR codes"
)
def list_qr_codes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    entity_type: Optional[QREntityType] = Query(None),
    current_user: User = Depends(get_current_user),
    service: QRCodeService = Depends(get_qr_code_service)
):
    return service.list_mine(current_user, page, limit, entity_type)


@router.get("/analytics", response_model=QRAnalytics, summary="QR scan statistics")
def get_analytics(
    current_user: User = Depends(get_current_user),
    service: QRCodeService = Depends(get_qr_code_service)
):
    return service.get_analytics(current_user)


@router.get(
    "/scan/{qr_hash}",
    response_model=QRScanResult,
    summary="Scan a QR code",
    description="Public. Counts the scan and returns the entity behind the code."
)
def scan_qr_code(
    qr_hash: str,
    service: QRCodeService = Depends(get_qr_code_service)
):
    return service.scan(qr_hash)


@router.get("/{qr_id}", response_model=QRCodeRead, summary="Get QR code")
def get_qr_code(
    qr_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: QRCodeService = Depends(get_qr_code_service)
):
    return service.get_qr_code(qr_id)


@router.get(
    "/{qr_id}/image",
    response_class=Response,
    summary="QR code image",
    description="Renders the public scan URL as PNG or SVG."
)
def get_qr_image(
    qr_id: uuid.UUID,
    format: str = Query("png", description="png or svg"),
    current_user: User = Depends(get_current_user),
    service: QRCodeService = Depends(get_qr_code_service)
):
    content, media_type = service.render_image(qr_id, format.lower())
    return Response(content=content, media_type=media_type)


@router.patch("/{qr_id}", response_model=QRCodeRead, summary="Update QR code")
def update_qr_code(
    qr_id: uuid.UUID,
    data: QRCodeUpdate,
    current_user: User = Depends(get_current_user),
    service: QRCodeService = Depends(get_qr_code_service)
):
    return service.update(current_user, qr_id, data)


@router.delete("/{qr_id}", response_model=MessageRead, summary="Delete QR code")
def delete_qr_code(
    qr_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: QRCodeService = Depends(get_qr_code_service)
):
    return service.delete(current_user, qr_id)
