import json
import os
import secrets
import string
import time
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import BackgroundTasks, HTTPException, status
from loguru import logger
from sqlmodel import Session, select, func

from app.core.transitions import LAB_TEST_TRANSITIONS, ensure_transition
from app.db.schema import (
    User, UserRole, Organization, OrgType, LabTest, Certificate, CertificateType,
    SupplyChainEventType, TestPriority, TestStatus, TestType
)
from app.models.common import Page
from app.models.lab import (
    LabTestCreate, LabTestUpdate, LabTestRead, CertificateCreate, CertificateRead,
    LabMetrics
)
from app.services.pagination import paginate
from app.services.traceability import ResolvedSubject, TraceabilityPipeline
from app.utils.certificate_pdf import certificate_path, write_certificate_pdf


CERTIFICATE_TYPE_FOR_TEST = {
    TestType.HEAVY_METALS_ANALYSIS: CertificateType.HEAVY_METALS_CLEARED,
    TestType.MICROBIOLOGICAL_TESTING: CertificateType.MICROBIOLOGICAL_CLEARED,
    TestType.ADULTERATION_TESTING: CertificateType.ADULTERATION_FREE,
}

STATUS_EVENT_NOTES = {
    TestStatus.COMPLETED: "Lab test completed successfully: {}",
    TestStatus.REJECTED: "Lab test rejected: {}",
    TestStatus.REQUIRES_RETEST: "Lab test requires retest: {}",
}

CERTIFICATE_VALIDITY = timedelta(days=365)


def generate_certificate_number() -> str:
    suffix = "".join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(6))
    return f"CERT-{int(time.time() * 1000)}-{suffix}"


def certificate_type_for(test_type: TestType) -> CertificateType:
    return CERTIFICATE_TYPE_FOR_TEST.get(test_type, CertificateType.QUALITY_CERTIFICATE)


def _is_admin(user: User) -> bool:
    return user.role in (UserRole.ADMIN, UserRole.SUPER_ADMIN)


class LabService:
    """
    Laboratory tests and the certificates that result from them.

    Every test is anchored in the ledger: opening a test records a TESTING
    event (and a QR code for it), and reaching COMPLETED, REJECTED or
    REQUIRES_RETEST records another one. Ledger and QR writes never fail
    the request.
    """

    def __init__(self, session: Session, background_tasks: Optional[BackgroundTasks] = None):
        self.session = session
        self.pipeline = TraceabilityPipeline(session, background_tasks)

    # ==========================================================================
    # LABS
    # ==========================================================================

    def list_labs(self) -> List[Organization]:
        return self.session.exec(
            select(Organization)
            .where(Organization.type == OrgType.LABS, Organization.is_active == True)
            .order_by(Organization.name)
        ).all()

    def get_metrics(self, user: User) -> LabMetrics:
        """Counters for the caller's laboratory."""
        org_id = user.organization_id

        def count(*conditions) -> int:
            return self.session.exec(
                select(func.count(LabTest.id)).where(LabTest.organization_id == org_id, *conditions)
            ).one()

        month_start = datetime.utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        recent = self.session.exec(
            select(LabTest)
            .where(LabTest.organization_id == org_id)
            .order_by(LabTest.created_at.desc())
            .limit(5)
        ).all()

        certificates = self.session.exec(
            select(func.count(Certificate.id)).where(Certificate.organization_id == org_id)
        ).one()

        return LabMetrics(
            total_tests=count(),
            pending_tests=count(LabTest.status == TestStatus.PENDING),
            in_progress_tests=count(LabTest.status == TestStatus.IN_PROGRESS),
            completed_tests=count(LabTest.status == TestStatus.COMPLETED),
            rejected_tests=count(LabTest.status == TestStatus.REJECTED),
            certificates_issued=certificates,
            tests_this_month=count(LabTest.created_at >= month_start),
            recent_tests=[LabTestRead.model_validate(t) for t in recent],
        )

    # ==========================================================================
    # LAB TESTS
    # ==========================================================================

    def get_test(self, test_id: UUID) -> LabTest:
        test = self.session.get(LabTest, test_id)
        if not test:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Lab test not found."
            )
        return test

    def create_test(self, user: User, data: LabTestCreate) -> LabTest:
        """
        Opens a lab test on a sample.

        The sample is resolved to a finished good or raw batch from (in
        order) a scanned QR payload, explicit ids or the typed batch number.
        The TESTING ledger event is written before the test row so the test
        can reference it; the QR code for that event follows the test.

        Raises:
            HTTPException(404): An explicit finished_good_id or batch_id is unknown.
        """
        subject = self.pipeline.resolve_subject(
            finished_good_id=data.finished_good_id,
            batch_id=data.batch_id,
            batch_number=data.batch_number,
            qr_snapshot=data.qr_data,
        )

        batch_note = f" (Batch: {data.batch_number})" if data.batch_number else ""
        event = self.pipeline.record_event(
            handler_id=user.id,
            event_type=SupplyChainEventType.TESTING,
            from_location_id=user.organization_id,
            to_location_id=user.organization_id,
            subject=subject,
            notes=f"Lab test created: {data.test_type.value} for sample {data.sample_name}{batch_note}",
            metadata={
                "testType": data.test_type.value,
                "priority": data.priority.value,
                "status": "TEST_INITIATED",
                "sampleName": data.sample_name,
                "sampleType": data.sample_type,
            },
        )

        test = LabTest(
            **data.model_dump(exclude={"batch_id", "finished_good_id", "qr_data"}),
            status=TestStatus.PENDING,
            requester_id=user.id,
            organization_id=user.organization_id,
            raw_material_batch_id=subject.raw_material_batch_id,
            finished_good_id=subject.finished_good_id,
            supply_chain_event_id=event.id if event else None,
        )
        self.session.add(test)
        self.session.commit()
        self.session.refresh(test)

        logger.info(
            f"Lab test {test.id} opened by {user.id} (subject resolved by {subject.resolved_by})")

        if event:
            snapshot = {
                "labTestId": test.id,
                "testType": test.test_type.value,
                "sampleName": test.sample_name,
                "status": test.status.value,
                "timestamp": datetime.utcnow(),
            }
            if test.raw_material_batch_id:
                snapshot["batchId"] = test.raw_material_batch_id
            if test.finished_good_id:
                snapshot["finishedGoodId"] = test.finished_good_id
            self.pipeline.issue_qr(event, user.id, snapshot)
            self.session.refresh(test)

        return test

    def list_tests(
        self,
        user: User,
        page: int = 1,
        limit: int = 10,
        test_status: Optional[TestStatus] = None,
        test_type: Optional[TestType] = None,
        priority: Optional[TestPriority] = None,
    ) -> Page:
        query = select(LabTest)
        if not _is_admin(user):
            query = query.where(LabTest.organization_id == user.organization_id)
        if test_status:
            query = query.where(LabTest.status == test_status)
        if test_type:
            query = query.where(LabTest.test_type == test_type)
        if priority:
            query = query.where(LabTest.priority == priority)

        return paginate(
            self.session, query.order_by(LabTest.created_at.desc()), page, limit, LabTestRead)

    def update_test(self, user: User, test_id: UUID, data: LabTestUpdate) -> LabTest:
        """
        Applies a partial update; status changes follow the lab test state
        machine. Reaching COMPLETED issues exactly one certificate.

        Raises:
            HTTPException(404): Test not found.
            InvalidTransition: The status change is not allowed.
        """
        test = self.get_test(test_id)
        previous_status = test.status

        if data.status is not None:
            ensure_transition("Lab test", LAB_TEST_TRANSITIONS, test.status, data.status)

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(test, key, value)

        if data.status == TestStatus.COMPLETED and not test.completion_date:
            test.completion_date = datetime.utcnow()

        self.session.add(test)
        self.session.commit()
        self.session.refresh(test)

        if data.status is None or data.status == previous_status:
            return test

        if data.status in STATUS_EVENT_NOTES:
            self.pipeline.record_event(
                handler_id=data.lab_technician_id or user.id,
                event_type=SupplyChainEventType.TESTING,
                from_location_id=test.organization_id,
                to_location_id=test.organization_id,
                subject=ResolvedSubject(
                    raw_material_batch_id=test.raw_material_batch_id,
                    finished_good_id=test.finished_good_id,
                ),
                notes=STATUS_EVENT_NOTES[data.status].format(test.test_type.value),
                metadata={
                    "labTestId": test.id,
                    "testType": test.test_type.value,
                    "status": data.status.value,
                    "completionDate": test.completion_date,
                    "results": data.results,
                    "certificationNumber": data.certification_number,
                },
            )
            self.session.refresh(test)

        if data.status == TestStatus.COMPLETED:
            self._issue_completion_certificate(test)
            self.session.refresh(test)

        return test

    def _issue_completion_certificate(self, test: LabTest) -> Optional[Certificate]:
        existing = self.session.exec(
            select(Certificate).where(Certificate.test_id == test.id)
        ).first()
        if existing:
            return existing

        certificate_type = certificate_type_for(test.test_type)
        issue_date = datetime.utcnow()

        certificate = Certificate(
            certificate_number=generate_certificate_number(),
            certificate_type=certificate_type,
            title=f"{certificate_type.value.replace('_', ' ').title()} for {test.sample_name}",
            description=f"Certificate for {test.test_type.value} testing of {test.sample_name}",
            issue_date=issue_date,
            expiry_date=issue_date + CERTIFICATE_VALIDITY,
            is_valid=True,
            test_id=test.id,
            issued_by_id=test.lab_technician_id or test.requester_id,
            organization_id=test.organization_id,
            qr_code_data=json.dumps({
                "labTestId": str(test.id),
                "testType": test.test_type.value,
                "results": test.results,
                "sampleName": test.sample_name,
                "batchNumber": test.batch_number,
            }, default=str),
        )
        self.session.add(certificate)
        self.session.commit()
        self.session.refresh(certificate)

        logger.info(f"Certificate {certificate.certificate_number} issued for lab test {test.id}")
        self._attach_pdf(certificate, test)
        return certificate

    def _attach_pdf(self, certificate: Certificate, test: Optional[LabTest]) -> None:
        try:
            certificate.digital_signature = write_certificate_pdf(certificate, test)
            self.session.add(certificate)
            self.session.commit()
            self.session.refresh(certificate)
        except Exception as e:
            self.session.rollback()
            logger.error(f"PDF for certificate {certificate.id} not rendered: {e}")

    # ==========================================================================
    # CERTIFICATES
    # ==========================================================================

    def get_certificate(self, certificate_id: UUID) -> Certificate:
        certificate = self.session.get(Certificate, certificate_id)
        if not certificate:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Certificate not found."
            )
        return certificate

    def create_certificate(self, user: User, data: CertificateCreate) -> Certificate:
        """
        Raises:
            HTTPException(404): The referenced test does not exist.
            HTTPException(409): The certificate number is taken.
        """
        test = self.get_test(data.test_id) if data.test_id else None

        if self.session.exec(
            select(Certificate).where(Certificate.certificate_number == data.certificate_number)
        ).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Certificate number '{data.certificate_number}' already exists."
            )

        certificate = Certificate(
            **data.model_dump(),
            issued_by_id=user.id,
            organization_id=user.organization_id,
        )
        self.session.add(certificate)
        self.session.commit()
        self.session.refresh(certificate)

        self.pipeline.record_event(
            handler_id=user.id,
            event_type=SupplyChainEventType.TESTING,
            from_location_id=user.organization_id,
            to_location_id=user.organization_id,
            subject=ResolvedSubject(
                raw_material_batch_id=test.raw_material_batch_id if test else None,
                finished_good_id=test.finished_good_id if test else None,
            ),
            notes=f"Certificate issued: {certificate.certificate_number} for {certificate.certificate_type.value}",
            metadata={
                "certificateId": certificate.id,
                "certificateNumber": certificate.certificate_number,
                "certificateType": certificate.certificate_type.value,
                "testId": certificate.test_id,
                "status": "CERTIFICATE_ISSUED",
            },
        )
        self.session.refresh(certificate)

        self._attach_pdf(certificate, test)
        return certificate

    def list_certificates(self, user: User, page: int = 1, limit: int = 10) -> Page:
        query = select(Certificate)
        if not _is_admin(user):
            query = query.where(Certificate.organization_id == user.organization_id)
        return paginate(
            self.session, query.order_by(Certificate.issue_date.desc()), page, limit, CertificateRead)

    def get_certificate_file(self, certificate_id: UUID) -> str:
        """
        Returns the filesystem path of the rendered PDF.

        Raises:
            HTTPException(404): Certificate missing, or its PDF was never rendered.
        """
        certificate = self.get_certificate(certificate_id)
        if not certificate.digital_signature:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Certificate PDF has not been generated."
            )

        path = certificate_path(certificate.digital_signature)
        if not os.path.isfile(path):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Certificate PDF file is missing."
            )
        return path
