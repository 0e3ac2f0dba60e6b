import os
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import FileResponse

from app.core.dependencies import get_current_user, get_lab_service, require_org_types
from app.db.schema import OrgType, TestPriority, TestStatus, TestType, User
from app.models.common import Page
from app.models.lab import (
    CertificateCreate, CertificateRead, LabMetrics, LabTestCreate, LabTestRead,
    LabTestUpdate
)
from app.models.organization import OrganizationRead
from app.services.lab import LabService


router = APIRouter()

lab_only = require_org_types(OrgType.LABS)


@router.get(
    "/",
    response_model=List[OrganizationRead],
    summary="List laboratories"
)
def list_labs(
    current_user: User = Depends(get_current_user),
    service: LabService = Depends(get_lab_service)
):
    return service.list_labs()


@router.get(
    "/metrics",
    response_model=LabMetrics,
    summary="Lab dashboard counters"
)
def get_metrics(
    current_user: User = Depends(lab_only),
    service: LabService = Depends(get_lab_service)
):
    return service.get_metrics(current_user)


# --- Tests ---

@router.post(
    "/tests",
    response_model=LabTestRead,
    status_code=status.HTTP_201_CREATED,
    summary="Open a lab test",
    description=(
        "The sample can be linked via finished_good_id, batch_id, a typed "
        "batch_number or a scanned QR payload (qr_data)."
    )
)
def create_test(
    data: LabTestCreate,
    current_user: User = Depends(lab_only),
    service: LabService = Depends(get_lab_service)
):
    return service.create_test(current_user, data)


@router.get(
    "/tests",
    response_model=Page[LabTestRead],
    summary="List lab tests"
)
def list_tests(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    test_status: Optional[TestStatus] = Query(None, alias="status"),
    test_type: Optional[TestType] = Query(None),
    priority: Optional[TestPriority] = Query(None),
    current_user: User = Depends(lab_only),
    service: LabService = Depends(get_lab_service)
):
    return service.list_tests(current_user, page, limit, test_status, test_type, priority)


@router.get("/tests/{test_id}", response_model=LabTestRead, summary="Get lab test")
def get_test(
    test_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: LabService = Depends(get_lab_service)
):
    return service.get_test(test_id)


@router.patch(
    "/tests/{test_id}",
    response_model=LabTestRead,
    summary="Update lab test",
    description="Completing a test issues its certificate automatically."
)
def update_test(
    test_id: uuid.UUID,
    data: LabTestUpdate,
    current_user: User = Depends(lab_only),
    service: LabService = Depends(get_lab_service)
):
    return service.update_test(current_user, test_id, data)


# --- Certificates ---

@router.post(
    "/certificates",
    response_model=CertificateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a certificate"
)
def create_certificate(
    data: CertificateCreate,
    current_user: User = Depends(lab_only),
    service: LabService = Depends(get_lab_service)
):
    return service.create_certificate(current_user, data)


@router.get(
    "/certificates",
    response_model=Page[CertificateRead],
    summary="List certificates"
)
def list_certificates(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(lab_only),
    service: LabService = Depends(get_lab_service)
):
    return service.list_certificates(current_user, page, limit)


@router.get(
    "/certificates/{certificate_id}",
    response_model=CertificateRead,
    summary="Get certificate"
)
def get_certificate(
    certificate_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: LabService = Depends(get_lab_service)
):
    return service.get_certificate(certificate_id)


@router.get(
    "/certificates/{certificate_id}/download",
    response_class=FileResponse,
    summary="Download certificate PDF"
)
def download_certificate(
    certificate_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: LabService = Depends(get_lab_service)
):
    path = service.get_certificate_file(certificate_id)
    return FileResponse(path, media_type="application/pdf", filename=os.path.basename(path))
