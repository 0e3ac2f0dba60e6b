from typing import Optional, List, Dict, Any
from datetime import datetime
import uuid
from sqlmodel import SQLModel, Field, Relationship, JSON
from enum import Enum


class OrgType(str, Enum):
    FARMER = "FARMER"
    MANUFACTURER = "MANUFACTURER"
    LABS = "LABS"
    DISTRIBUTOR = "DISTRIBUTOR"
    ADMIN = "ADMIN"  # Internal only, never selectable at registration


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class ConservationStatus(str, Enum):
    LEAST_CONCERN = "LEAST_CONCERN"
    NEAR_THREATENED = "NEAR_THREATENED"
    VULNERABLE = "VULNERABLE"
    ENDANGERED = "ENDANGERED"
    CRITICALLY_ENDANGERED = "CRITICALLY_ENDANGERED"


class QuantityUnit(str, Enum):
    KG = "KG"
    TONNES = "TONNES"
    GRAMS = "GRAMS"
    POUNDS = "POUNDS"
    PIECES = "PIECES"
    BOTTLES = "BOTTLES"
    BOXES = "BOXES"


class RawMaterialBatchStatus(str, Enum):
    CREATED = "CREATED"
    IN_PROCESSING = "IN_PROCESSING"
    PROCESSED = "PROCESSED"
    QUARANTINED = "QUARANTINED"


class FinishedGoodProductType(str, Enum):
    POWDER = "POWDER"
    CAPSULE = "CAPSULE"
    TABLET = "TABLET"
    SYRUP = "SYRUP"
    OIL = "OIL"
    CREAM = "CREAM"


class SupplyChainEventType(str, Enum):
    PROCESSING = "PROCESSING"
    TESTING = "TESTING"
    TRANSFER = "TRANSFER"
    DISTRIBUTION = "DISTRIBUTION"
    STORAGE = "STORAGE"
    PACKAGING = "PACKAGING"


class TestType(str, Enum):
    ADULTERATION_TESTING = "ADULTERATION_TESTING"
    HEAVY_METALS_ANALYSIS = "HEAVY_METALS_ANALYSIS"
    MOISTURE_CONTENT = "MOISTURE_CONTENT"
    ACTIVE_INGREDIENT_ANALYSIS = "ACTIVE_INGREDIENT_ANALYSIS"
    MICROBIOLOGICAL_TESTING = "MICROBIOLOGICAL_TESTING"
    PESTICIDE_RESIDUE_ANALYSIS = "PESTICIDE_RESIDUE_ANALYSIS"
    STABILITY_TESTING = "STABILITY_TESTING"
    STERILITY_TESTING = "STERILITY_TESTING"
    CONTAMINATION_TESTING = "CONTAMINATION_TESTING"
    QUALITY_ASSURANCE = "QUALITY_ASSURANCE"


class TestStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    REQUIRES_RETEST = "REQUIRES_RETEST"


class TestPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class CertificateType(str, Enum):
    QUALITY_CERTIFICATE = "QUALITY_CERTIFICATE"
    AYUSH_COMPLIANCE = "AYUSH_COMPLIANCE"
    ADULTERATION_FREE = "ADULTERATION_FREE"
    HEAVY_METALS_CLEARED = "HEAVY_METALS_CLEARED"
    MICROBIOLOGICAL_CLEARED = "MICROBIOLOGICAL_CLEARED"
    ORGANIC_CERTIFICATION = "ORGANIC_CERTIFICATION"
    GMP_COMPLIANCE = "GMP_COMPLIANCE"
    EXPORT_CERTIFICATE = "EXPORT_CERTIFICATE"
    BATCH_CERTIFICATE = "BATCH_CERTIFICATE"


class QREntityType(str, Enum):
    RAW_MATERIAL_BATCH = "RAW_MATERIAL_BATCH"
    FINISHED_GOOD = "FINISHED_GOOD"
    SUPPLY_CHAIN_EVENT = "SUPPLY_CHAIN_EVENT"
    LAB_TEST = "LAB_TEST"
    CERTIFICATE = "CERTIFICATE"


class DocumentType(str, Enum):
    CERTIFICATE = "CERTIFICATE"
    PHOTO = "PHOTO"
    INVOICE = "INVOICE"
    REPORT = "REPORT"
    TEST_RESULT = "TEST_RESULT"
    LICENSE = "LICENSE"
    OTHER = "OTHER"


class DocumentEntityType(str, Enum):
    COLLECTION_EVENT = "COLLECTION_EVENT"
    RAW_MATERIAL_BATCH = "RAW_MATERIAL_BATCH"
    SUPPLY_CHAIN_EVENT = "SUPPLY_CHAIN_EVENT"
    FINISHED_GOOD = "FINISHED_GOOD"


class StockProductType(str, Enum):
    RAW_MATERIAL_BATCH = "RAW_MATERIAL_BATCH"
    FINISHED_GOOD = "FINISHED_GOOD"


class InventoryStatus(str, Enum):
    IN_STOCK = "IN_STOCK"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    RESERVED = "RESERVED"
    DAMAGED = "DAMAGED"
    EXPIRED = "EXPIRED"
    QUARANTINED = "QUARANTINED"


class RecipientType(str, Enum):
    MANUFACTURER = "MANUFACTURER"
    DISTRIBUTOR = "DISTRIBUTOR"
    RETAILER = "RETAILER"
    CUSTOMER = "CUSTOMER"
    LAB = "LAB"


class ShipmentStatus(str, Enum):
    PREPARING = "PREPARING"
    DISPATCHED = "DISPATCHED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    DELAYED = "DELAYED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


class VerificationType(str, Enum):
    INCOMING_GOODS_VERIFICATION = "INCOMING_GOODS_VERIFICATION"
    QUALITY_CHECK = "QUALITY_CHECK"
    AUTHENTICITY_VERIFICATION = "AUTHENTICITY_VERIFICATION"
    BATCH_VERIFICATION = "BATCH_VERIFICATION"
    DOCUMENT_VERIFICATION = "DOCUMENT_VERIFICATION"
    STORAGE_CONDITION_CHECK = "STORAGE_CONDITION_CHECK"
    EXPIRY_VERIFICATION = "EXPIRY_VERIFICATION"


class VerificationEntityType(str, Enum):
    RAW_MATERIAL_BATCH = "RAW_MATERIAL_BATCH"
    FINISHED_GOOD = "FINISHED_GOOD"
    SHIPMENT = "SHIPMENT"
    INVENTORY_ITEM = "INVENTORY_ITEM"


class VerificationStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    REQUIRES_ATTENTION = "REQUIRES_ATTENTION"


class AlertSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AdminActionType(str, Enum):
    USER_ACTIVATED = "USER_ACTIVATED"
    USER_DEACTIVATED = "USER_DEACTIVATED"
    USER_VERIFIED = "USER_VERIFIED"
    USER_CREATED = "USER_CREATED"
    USER_ROLE_CHANGED = "USER_ROLE_CHANGED"
    ORGANIZATION_CREATED = "ORGANIZATION_CREATED"
    ORGANIZATION_UPDATED = "ORGANIZATION_UPDATED"
    ORGANIZATION_DELETED = "ORGANIZATION_DELETED"
    ALERT_RESOLVED = "ALERT_RESOLVED"


class TimestampMixin(SQLModel):
    """
    Standard audit timestamps shared by every table.
    """
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="UTC timestamp when this record was first persisted. Example: '2024-03-12 08:30:00'"
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column_kwargs={"onupdate": datetime.utcnow},
        description="UTC timestamp of the last modification. Updates automatically."
    )


# ==========================================================================
# IDENTITY
# ==========================================================================

class Organization(TimestampMixin, SQLModel, table=True):
    """
    A participant in the supply chain: a farmer cooperative, a manufacturer,
    a testing laboratory or a distributor. Users always act on behalf of
    exactly one organization, and supply-chain events use organizations as
    their from/to locations.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        description="The unique identifier for the organization."
    )
    name: str = Field(
        unique=True,
        index=True,
        description="Display name. Example: 'Green Valley Farmers Co-op'"
    )
    type: OrgType = Field(
        index=True,
        description="Role of the organization in the supply chain. Example: 'LABS'"
    )
    description: Optional[str] = Field(default=None)
    registration_number: Optional[str] = Field(
        default=None,
        description="Government or trade registration number. Example: 'AYUSH-MH-2024-0042'"
    )
    address: Optional[str] = Field(default=None)
    phone: Optional[str] = Field(default=None)
    email: Optional[str] = Field(default=None)
    website: Optional[str] = Field(default=None)
    is_active: bool = Field(
        default=True,
        description="Inactive organizations are hidden from public listings."
    )

    users: List["User"] = Relationship(back_populates="organization")


class User(TimestampMixin, SQLModel, table=True):
    """
    A human account. Acts as the 'handler' on ledger events and as the
    collector, requester or uploader on the records it creates.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        description="The unique identifier for the user."
    )
    organization_id: uuid.UUID = Field(
        foreign_key="organization.id",
        index=True,
        description="The organization this user acts for."
    )
    email: str = Field(
        unique=True,
        index=True,
        description="The login email address. Example: 'ravi@greenvalley.in'"
    )
    hashed_password: str = Field(
        description="The salted bcrypt hash. Never store plain text."
    )
    first_name: str = Field(description="Example: 'Ravi'")
    last_name: str = Field(description="Example: 'Kumar'")
    phone: Optional[str] = Field(default=None)
    role: UserRole = Field(
        default=UserRole.USER,
        description="Platform-level role. ADMIN and SUPER_ADMIN can manage users and organizations."
    )
    org_type: OrgType = Field(
        description="Copied from the organization at registration, used for route gating."
    )
    is_active: bool = Field(
        default=True,
        description="Soft delete flag. If False, user cannot log in."
    )
    is_verified: bool = Field(default=False)
    last_login: Optional[datetime] = Field(default=None)

    organization: Optional[Organization] = Relationship(back_populates="users")


# ==========================================================================
# REFERENCE DATA
# ==========================================================================

class HerbSpecies(TimestampMixin, SQLModel, table=True):
    """
    A medicinal plant species that can be collected. Scientific names are
    unique across the registry.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    scientific_name: str = Field(
        unique=True,
        index=True,
        description="Binomial name. Example: 'Withania somnifera'"
    )
    common_name: str = Field(description="Example: 'Ashwagandha'")
    family: Optional[str] = Field(default=None, description="Example: 'Solanaceae'")
    description: Optional[str] = Field(default=None)
    regions: List[str] = Field(
        default_factory=list,
        sa_type=JSON,
        description="Growing regions. Example: ['Madhya Pradesh', 'Rajasthan']"
    )
    conservation_status: ConservationStatus = Field(
        default=ConservationStatus.LEAST_CONCERN)
    medicinal_uses: List[str] = Field(
        default_factory=list,
        sa_type=JSON,
        description="Example: ['adaptogen', 'sleep aid']"
    )
    created_by_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="user.id")


# ==========================================================================
# HARVEST AND BATCHES
# ==========================================================================

class CollectionEvent(TimestampMixin, SQLModel, table=True):
    """
    A single harvest recorded by a farmer in the field. Immutable once
    created except for the back-link to the raw-material batch it was
    rolled into.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    collector_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    farmer_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    species_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="herbspecies.id", index=True)
    quantity: float = Field(description="Harvested amount. Example: 25.5")
    unit: QuantityUnit = Field(default=QuantityUnit.KG)
    latitude: Optional[float] = Field(default=None)
    longitude: Optional[float] = Field(default=None)
    location: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_type=JSON,
        description="Raw location object as submitted. Example: {'latitude': 23.25, 'longitude': 77.41}"
    )
    quality_notes: Optional[str] = Field(
        default=None,
        description="Initial quality metrics serialised as JSON text."
    )
    notes: Optional[str] = Field(default=None)
    photo_url: Optional[str] = Field(default=None)
    collection_date: datetime = Field(default_factory=datetime.utcnow)
    raw_material_batch_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="rawmaterialbatch.id",
        index=True,
        description="Set once the event has been rolled into a batch."
    )

    raw_material_batch: Optional["RawMaterialBatch"] = Relationship(
        back_populates="collection_events")


class RawMaterialBatch(TimestampMixin, SQLModel, table=True):
    """
    A batch of raw herb material assembled from one or more collection
    events. Status only moves forward (see app.core.transitions).
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    herb_name: str = Field(index=True, description="Example: 'Ashwagandha'")
    scientific_name: Optional[str] = Field(default=None)
    quantity: float = Field(description="Example: 100")
    unit: QuantityUnit = Field(default=QuantityUnit.KG)
    status: RawMaterialBatchStatus = Field(
        default=RawMaterialBatchStatus.CREATED, index=True)
    description: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    created_by_id: uuid.UUID = Field(foreign_key="user.id")
    organization_id: uuid.UUID = Field(foreign_key="organization.id")

    collection_events: List[CollectionEvent] = Relationship(
        back_populates="raw_material_batch")
    compositions: List["FinishedGoodComposition"] = Relationship(
        back_populates="raw_material_batch")


# ==========================================================================
# FINISHED GOODS
# ==========================================================================

class FinishedGood(TimestampMixin, SQLModel, table=True):
    """
    A packaged product made by a manufacturer from raw-material batches.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    product_name: str = Field(index=True, description="Example: 'Ashwagandha Root Powder'")
    product_type: FinishedGoodProductType
    quantity: float
    unit: QuantityUnit = Field(default=QuantityUnit.KG)
    description: Optional[str] = Field(default=None)
    batch_number: Optional[str] = Field(
        default=None,
        unique=True,
        index=True,
        description="Manufacturer batch number printed on the pack. Example: 'ASH-2024-001'"
    )
    manufacture_date: Optional[datetime] = Field(default=None)
    expiry_date: Optional[datetime] = Field(default=None)
    manufacturer_id: uuid.UUID = Field(foreign_key="user.id")
    organization_id: uuid.UUID = Field(foreign_key="organization.id")

    compositions: List["FinishedGoodComposition"] = Relationship(
        back_populates="finished_good",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )


class FinishedGoodComposition(TimestampMixin, SQLModel, table=True):
    """
    One raw-material batch used in a finished good. Percentages across all
    rows of one finished good add up to at most 100.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    finished_good_id: uuid.UUID = Field(foreign_key="finishedgood.id", index=True)
    raw_material_batch_id: uuid.UUID = Field(
        foreign_key="rawmaterialbatch.id", index=True)
    percentage: float = Field(description="Share of the product. Example: 100")
    quantity_used: float = Field(description="Absolute amount drawn from the batch.")
    notes: Optional[str] = Field(default=None)

    finished_good: Optional[FinishedGood] = Relationship(back_populates="compositions")
    raw_material_batch: Optional[RawMaterialBatch] = Relationship(
        back_populates="compositions")


# ==========================================================================
# LABS
# ==========================================================================

class LabTest(TimestampMixin, SQLModel, table=True):
    """
    A laboratory test requested on a sample of a batch or finished good.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    test_type: TestType = Field(index=True)
    sample_name: str
    sample_type: str
    sample_description: Optional[str] = Field(default=None)
    batch_number: Optional[str] = Field(
        default=None, description="Free-form batch reference as typed by the requester.")
    collection_date: datetime
    priority: TestPriority = Field(default=TestPriority.MEDIUM)
    status: TestStatus = Field(default=TestStatus.PENDING, index=True)
    requester_id: uuid.UUID = Field(foreign_key="user.id")
    lab_technician_id: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id")
    organization_id: uuid.UUID = Field(foreign_key="organization.id", index=True)
    raw_material_batch_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="rawmaterialbatch.id")
    finished_good_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="finishedgood.id")
    supply_chain_event_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="supplychainevent.id",
        description="The TESTING ledger event recorded when the test was opened."
    )
    test_date: Optional[datetime] = Field(default=None)
    completion_date: Optional[datetime] = Field(default=None)
    results: Optional[Dict[str, Any]] = Field(default=None, sa_type=JSON)
    methodology: Optional[str] = Field(default=None)
    equipment: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    cost: Optional[float] = Field(default=None)
    certification_number: Optional[str] = Field(default=None)

    certificates: List["Certificate"] = Relationship(back_populates="test")


class Certificate(TimestampMixin, SQLModel, table=True):
    """
    A quality certificate, either issued manually by a lab or produced
    automatically when a lab test completes.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    certificate_number: str = Field(
        unique=True, index=True, description="Example: 'CERT-1718000000000-X8K2QZ'")
    certificate_type: CertificateType
    title: str
    description: Optional[str] = Field(default=None)
    issue_date: datetime = Field(default_factory=datetime.utcnow)
    expiry_date: Optional[datetime] = Field(default=None)
    is_valid: bool = Field(default=True)
    test_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="labtest.id", index=True)
    issued_by_id: uuid.UUID = Field(foreign_key="user.id")
    organization_id: uuid.UUID = Field(foreign_key="organization.id")
    qr_code_data: Optional[str] = Field(default=None)
    digital_signature: Optional[str] = Field(
        default=None,
        description="Filename of the rendered PDF under static/certificates."
    )

    test: Optional[LabTest] = Relationship(back_populates="certificates")


# ==========================================================================
# LEDGER
# ==========================================================================

class SupplyChainEvent(TimestampMixin, SQLModel, table=True):
    """
    Append-only ledger row for one real-world supply-chain action. Once a QR
    code points at it, the row is history and is never edited.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    event_type: SupplyChainEventType = Field(index=True)
    handler_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    from_location_id: uuid.UUID = Field(foreign_key="organization.id")
    to_location_id: uuid.UUID = Field(foreign_key="organization.id")
    raw_material_batch_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="rawmaterialbatch.id", index=True)
    finished_good_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="finishedgood.id", index=True)
    notes: Optional[str] = Field(default=None)
    event_metadata: Dict[str, Any] = Field(
        default_factory=dict,
        sa_type=JSON,
        description="Action specific detail. Example: {'testType': 'HEAVY_METALS_ANALYSIS', 'status': 'TEST_INITIATED'}"
    )
    timestamp: datetime = Field(default_factory=datetime.utcnow, index=True)


class QRCode(TimestampMixin, SQLModel, table=True):
    """
    A scannable code. `entity_type`/`entity_id` form a loose polymorphic
    reference; codes issued by the traceability pipeline always point at a
    SupplyChainEvent.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    qr_hash: str = Field(
        unique=True,
        index=True,
        description="Opaque token encoded in the QR image (32 hex chars)."
    )
    entity_type: QREntityType = Field(index=True)
    entity_id: uuid.UUID = Field(index=True)
    generated_by_id: uuid.UUID = Field(foreign_key="user.id")
    scan_count: int = Field(default=0)
    last_scanned_at: Optional[datetime] = Field(default=None)
    is_active: bool = Field(default=True)
    custom_data: Dict[str, Any] = Field(
        default_factory=dict,
        sa_type=JSON,
        description="Snapshot of business fields captured at generation time."
    )


class Document(TimestampMixin, SQLModel, table=True):
    """
    An uploaded file attached to exactly one of: collection event, raw
    material batch, supply chain event, finished good.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    file_name: str = Field(description="Stored filename on disk.")
    original_name: str
    file_url: str
    file_size: int = Field(default=0)
    mime_type: Optional[str] = Field(default=None)
    document_type: DocumentType = Field(index=True)
    description: Optional[str] = Field(default=None)
    uploaded_by_id: uuid.UUID = Field(foreign_key="user.id")

    collection_event_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="collectionevent.id", index=True)
    raw_material_batch_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="rawmaterialbatch.id", index=True)
    supply_chain_event_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="supplychainevent.id", index=True)
    finished_good_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="finishedgood.id", index=True)


# ==========================================================================
# DISTRIBUTION
# ==========================================================================

class DistributorInventory(TimestampMixin, SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    distributor_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    organization_id: uuid.UUID = Field(foreign_key="organization.id", index=True)
    product_type: StockProductType
    entity_id: uuid.UUID = Field(index=True)
    product_name: str
    quantity: float
    unit: QuantityUnit
    location: Optional[str] = Field(default=None)
    warehouse_section: Optional[str] = Field(default=None)
    status: InventoryStatus = Field(default=InventoryStatus.IN_STOCK)
    received_date: datetime = Field(default_factory=datetime.utcnow)
    expiry_date: Optional[datetime] = Field(default=None)
    quality_notes: Optional[str] = Field(default=None)
    storage_conditions: Optional[str] = Field(default=None)


class DistributorShipment(TimestampMixin, SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    shipment_number: str = Field(unique=True, index=True, description="Example: 'DIST-1718000000000-0375'")
    distributor_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    organization_id: uuid.UUID = Field(foreign_key="organization.id", index=True)
    recipient_type: RecipientType
    recipient_id: uuid.UUID = Field(
        foreign_key="organization.id",
        description="Receiving organization; used as the ledger 'to' location."
    )
    recipient_name: Optional[str] = Field(default=None)
    recipient_address: str
    recipient_phone: Optional[str] = Field(default=None)
    status: ShipmentStatus = Field(default=ShipmentStatus.PREPARING, index=True)
    shipment_date: Optional[datetime] = Field(default=None)
    expected_delivery: Optional[datetime] = Field(default=None)
    actual_delivery: Optional[datetime] = Field(default=None)
    tracking_number: Optional[str] = Field(default=None)
    carrier_info: Optional[Dict[str, Any]] = Field(default=None, sa_type=JSON)
    shipping_cost: Optional[float] = Field(default=None)
    total_value: Optional[float] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    special_instructions: Optional[str] = Field(default=None)

    items: List["DistributorShipmentItem"] = Relationship(
        back_populates="shipment",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )


class DistributorShipmentItem(TimestampMixin, SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    shipment_id: uuid.UUID = Field(foreign_key="distributorshipment.id", index=True)
    product_type: StockProductType
    entity_id: uuid.UUID
    product_name: str
    quantity: float
    unit: QuantityUnit
    unit_price: Optional[float] = Field(default=None)
    total_price: Optional[float] = Field(default=None)
    batch_number: Optional[str] = Field(default=None)

    shipment: Optional[DistributorShipment] = Relationship(back_populates="items")


class DistributorVerification(TimestampMixin, SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    verification_number: str = Field(unique=True, index=True, description="Example: 'DVR-1718000000000-4821'")
    verification_type: VerificationType
    entity_type: VerificationEntityType
    entity_id: uuid.UUID
    distributor_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    organization_id: uuid.UUID = Field(foreign_key="organization.id", index=True)
    status: VerificationStatus = Field(default=VerificationStatus.PENDING)
    verification_method: Optional[str] = Field(default=None)
    results: Optional[Dict[str, Any]] = Field(default=None, sa_type=JSON)
    notes: Optional[str] = Field(default=None)
    verified_at: Optional[datetime] = Field(default=None)


# ==========================================================================
# ADMINISTRATION
# ==========================================================================

class SystemAlert(TimestampMixin, SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    alert_type: str = Field(description="Example: 'SECURITY', 'DATA_QUALITY'")
    severity: AlertSeverity = Field(default=AlertSeverity.MEDIUM, index=True)
    title: str
    message: str
    is_resolved: bool = Field(default=False, index=True)
    resolved_by_id: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id")
    resolved_at: Optional[datetime] = Field(default=None)


class AdminAction(SQLModel, table=True):
    """
    Immutable record of an administrative change, written by a background
    worker after the request that caused it.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    admin_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    action_type: AdminActionType = Field(index=True)
    target_type: str = Field(description="Example: 'User', 'Organization'")
    target_id: uuid.UUID
    description: str
    details: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    ip_address: Optional[str] = Field(default=None)
    timestamp: datetime = Field(default_factory=datetime.utcnow, index=True)
