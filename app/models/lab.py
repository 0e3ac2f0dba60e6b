from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from pydantic import model_validator
from app.db.schema import CertificateType, TestPriority, TestStatus, TestType
from app.models.qr_code import QRSnapshot


class LabTestCreate(SQLModel):
    """
    Opens a lab test. The sample may be tied to a product or batch through
    an explicit id, a typed batch number, or a scanned QR payload.
    """
    test_type: TestType
    sample_name: str = Field(min_length=2, max_length=100)
    sample_type: str = Field(min_length=2, max_length=50)
    sample_description: Optional[str] = Field(default=None, max_length=500)
    batch_number: Optional[str] = Field(default=None, max_length=50)
    collection_date: datetime
    priority: TestPriority = TestPriority.MEDIUM
    notes: Optional[str] = Field(default=None, max_length=1000)
    batch_id: Optional[UUID] = None
    finished_good_id: Optional[UUID] = None
    qr_data: Optional[QRSnapshot] = None


class LabTestUpdate(SQLModel):
    status: Optional[TestStatus] = None
    lab_technician_id: Optional[UUID] = None
    test_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    results: Optional[Dict[str, Any]] = None
    methodology: Optional[str] = Field(default=None, max_length=1000)
    equipment: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=1000)
    cost: Optional[float] = Field(default=None, gt=0)
    certification_number: Optional[str] = Field(default=None, max_length=100)


class LabTestRead(SQLModel):
    id: UUID
    test_type: TestType
    sample_name: str
    sample_type: str
    sample_description: Optional[str] = None
    batch_number: Optional[str] = None
    collection_date: datetime
    priority: TestPriority
    status: TestStatus
    requester_id: UUID
    lab_technician_id: Optional[UUID] = None
    organization_id: UUID
    raw_material_batch_id: Optional[UUID] = None
    finished_good_id: Optional[UUID] = None
    supply_chain_event_id: Optional[UUID] = None
    test_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    results: Optional[Dict[str, Any]] = None
    methodology: Optional[str] = None
    equipment: Optional[str] = None
    notes: Optional[str] = None
    cost: Optional[float] = None
    certification_number: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CertificateCreate(SQLModel):
    certificate_number: str = Field(min_length=3, max_length=100)
    certificate_type: CertificateType
    title: str = Field(min_length=3, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    issue_date: datetime
    expiry_date: Optional[datetime] = None
    test_id: Optional[UUID] = None
    qr_code_data: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode='after')
    def validate_dates(self) -> 'CertificateCreate':
        if self.expiry_date and self.expiry_date <= self.issue_date:
            raise ValueError("expiry_date must be after issue_date.")
        return self


class CertificateRead(SQLModel):
    id: UUID
    certificate_number: str
    certificate_type: CertificateType
    title: str
    description: Optional[str] = None
    issue_date: datetime
    expiry_date: Optional[datetime] = None
    is_valid: bool
    test_id: Optional[UUID] = None
    issued_by_id: UUID
    organization_id: UUID
    qr_code_data: Optional[str] = None
    digital_signature: Optional[str] = None
    created_at: datetime


class LabMetrics(SQLModel):
    total_tests: int
    pending_tests: int
    in_progress_tests: int
    completed_tests: int
    rejected_tests: int
    certificates_issued: int
    tests_this_month: int
    recent_tests: List[LabTestRead]
