from typing import Dict, List
from fastapi import APIRouter

from app.db import schema


router = APIRouter()

VOCABULARIES = {
    "orgTypes": schema.OrgType,
    "userRoles": schema.UserRole,
    "conservationStatuses": schema.ConservationStatus,
    "quantityUnits": schema.QuantityUnit,
    "rawMaterialBatchStatuses": schema.RawMaterialBatchStatus,
    "finishedGoodProductTypes": schema.FinishedGoodProductType,
    "supplyChainEventTypes": schema.SupplyChainEventType,
    "testTypes": schema.TestType,
    "testStatuses": schema.TestStatus,
    "testPriorities": schema.TestPriority,
    "certificateTypes": schema.CertificateType,
    "qrEntityTypes": schema.QREntityType,
    "documentTypes": schema.DocumentType,
    "documentEntityTypes": schema.DocumentEntityType,
    "stockProductTypes": schema.StockProductType,
    "inventoryStatuses": schema.InventoryStatus,
    "recipientTypes": schema.RecipientType,
    "shipmentStatuses": schema.ShipmentStatus,
    "verificationTypes": schema.VerificationType,
    "verificationEntityTypes": schema.VerificationEntityType,
    "verificationStatuses": schema.VerificationStatus,
    "alertSeverities": schema.AlertSeverity,
}


@router.get(
    "/",
    response_model=Dict[str, List[str]],
    summary="All enumerated vocabularies",
    description="Public. Used by clients to populate dropdowns."
)
def list_enums():
    vocabularies = {name: [member.value for member in enum] for name, enum in VOCABULARIES.items()}
    # The admin organization type is internal
    vocabularies["orgTypes"] = [t for t in vocabularies["orgTypes"] if t != schema.OrgType.ADMIN.value]
    return vocabularies
