"""
Allowed status transitions for every entity that carries a lifecycle status.

Handlers never assign a status directly; they call `ensure_transition`
first so that the rules live in one table per entity.
"""
from enum import Enum
from typing import Dict, Mapping, Set

from app.db.schema import (
    RawMaterialBatchStatus, TestStatus, ShipmentStatus, VerificationStatus
)


class InvalidTransition(Exception):
    def __init__(self, entity: str, current: Enum, target: Enum):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(
            f"{entity} cannot move from {current.value} to {target.value}.")


BATCH_TRANSITIONS: Dict[RawMaterialBatchStatus, Set[RawMaterialBatchStatus]] = {
    RawMaterialBatchStatus.CREATED: {
        RawMaterialBatchStatus.IN_PROCESSING,
        RawMaterialBatchStatus.QUARANTINED,
    },
    RawMaterialBatchStatus.IN_PROCESSING: {
        RawMaterialBatchStatus.PROCESSED,
        RawMaterialBatchStatus.QUARANTINED,
    },
    RawMaterialBatchStatus.PROCESSED: set(),
    RawMaterialBatchStatus.QUARANTINED: set(),
}

LAB_TEST_TRANSITIONS: Dict[TestStatus, Set[TestStatus]] = {
    TestStatus.PENDING: {
        TestStatus.IN_PROGRESS,
        TestStatus.REJECTED,
        TestStatus.CANCELLED,
    },
    TestStatus.IN_PROGRESS: {
        TestStatus.COMPLETED,
        TestStatus.REJECTED,
        TestStatus.CANCELLED,
        TestStatus.REQUIRES_RETEST,
    },
    TestStatus.REQUIRES_RETEST: {
        TestStatus.IN_PROGRESS,
        TestStatus.REJECTED,
        TestStatus.CANCELLED,
    },
    TestStatus.COMPLETED: set(),
    TestStatus.REJECTED: set(),
    TestStatus.CANCELLED: set(),
}

SHIPMENT_TRANSITIONS: Dict[ShipmentStatus, Set[ShipmentStatus]] = {
    ShipmentStatus.PREPARING: {
        ShipmentStatus.DISPATCHED,
        ShipmentStatus.CANCELLED,
    },
    ShipmentStatus.DISPATCHED: {
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.DELIVERED,
        ShipmentStatus.DELAYED,
        ShipmentStatus.RETURNED,
    },
    ShipmentStatus.IN_TRANSIT: {
        ShipmentStatus.DELIVERED,
        ShipmentStatus.DELAYED,
        ShipmentStatus.RETURNED,
    },
    ShipmentStatus.DELAYED: {
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.DELIVERED,
        ShipmentStatus.RETURNED,
        ShipmentStatus.CANCELLED,
    },
    ShipmentStatus.DELIVERED: set(),
    ShipmentStatus.CANCELLED: set(),
    ShipmentStatus.RETURNED: set(),
}

VERIFICATION_TRANSITIONS: Dict[VerificationStatus, Set[VerificationStatus]] = {
    VerificationStatus.PENDING: {
        VerificationStatus.IN_PROGRESS,
        VerificationStatus.VERIFIED,
        VerificationStatus.REJECTED,
        VerificationStatus.REQUIRES_ATTENTION,
    },
    VerificationStatus.IN_PROGRESS: {
        VerificationStatus.VERIFIED,
        VerificationStatus.REJECTED,
        VerificationStatus.REQUIRES_ATTENTION,
    },
    VerificationStatus.REQUIRES_ATTENTION: {
        VerificationStatus.IN_PROGRESS,
        VerificationStatus.VERIFIED,
        VerificationStatus.REJECTED,
    },
    VerificationStatus.VERIFIED: set(),
    VerificationStatus.REJECTED: set(),
}


def allowed_transitions(table: Mapping[Enum, Set[Enum]], current: Enum) -> Set[Enum]:
    return table.get(current, set())


def is_terminal(table: Mapping[Enum, Set[Enum]], state: Enum) -> bool:
    return not allowed_transitions(table, state)


def can_transition(table: Mapping[Enum, Set[Enum]], current: Enum, target: Enum) -> bool:
    """
    Definitive transition check. Staying in the same state is always allowed.
    """
    if current == target:
        return True
    return target in allowed_transitions(table, current)


def ensure_transition(entity: str, table: Mapping[Enum, Set[Enum]], current: Enum, target: Enum) -> None:
    if not can_transition(table, current, target):
        raise InvalidTransition(entity, current, target)
