# tests/test_supply_chain.py

"""
The supply-chain ledger and its status transition tables.
"""

import pytest

from app.core.transitions import (
    BATCH_TRANSITIONS, LAB_TEST_TRANSITIONS, SHIPMENT_TRANSITIONS, InvalidTransition,
    can_transition, ensure_transition, is_terminal
)
from app.db import schema
from app.db.schema import Organization, RawMaterialBatchStatus, ShipmentStatus, User


# --- Transition tables ---

def test_batch_moves_forward_only():
    assert can_transition(BATCH_TRANSITIONS, RawMaterialBatchStatus.CREATED, RawMaterialBatchStatus.IN_PROCESSING)
    assert not can_transition(BATCH_TRANSITIONS, RawMaterialBatchStatus.PROCESSED, RawMaterialBatchStatus.CREATED)
    assert is_terminal(BATCH_TRANSITIONS, RawMaterialBatchStatus.QUARANTINED)


def test_same_state_is_allowed():
    assert can_transition(LAB_TEST_TRANSITIONS, schema.TestStatus.COMPLETED, schema.TestStatus.COMPLETED)


def test_lab_test_cannot_skip_work():
    assert not can_transition(LAB_TEST_TRANSITIONS, schema.TestStatus.PENDING, schema.TestStatus.COMPLETED)
    assert can_transition(LAB_TEST_TRANSITIONS, schema.TestStatus.REQUIRES_RETEST, schema.TestStatus.IN_PROGRESS)


def test_ensure_transition_raises_with_states():
    with pytest.raises(InvalidTransition) as exc:
        ensure_transition("Shipment", SHIPMENT_TRANSITIONS, ShipmentStatus.DELIVERED, ShipmentStatus.PREPARING)

    assert exc.value.current == ShipmentStatus.DELIVERED
    assert "DELIVERED" in str(exc.value)
    assert "PREPARING" in str(exc.value)


# --- Ledger API ---

def _record(client, headers, from_org: Organization, to_org: Organization, **kwargs):
    return client.post("/api/v1/supply-chain-events/", json={
        "event_type": "TRANSFER",
        "from_location_id": str(from_org.id),
        "to_location_id": str(to_org.id),
        **kwargs,
    }, headers=headers)


def test_record_and_trace_events(
    client, auth_headers, manufacturer: User, manufacturer_org: Organization,
    distributor_org: Organization, create_batch
):
    batch = create_batch()
    headers = auth_headers(manufacturer)

    response = _record(
        client, headers, manufacturer_org, distributor_org,
        raw_material_batch_id=batch["id"], event_metadata={"truck": "MH-12-AB-1234"})

    assert response.status_code == 201, response.text
    assert response.json()["handler_id"] == str(manufacturer.id)

    path = client.get(f"/api/v1/supply-chain-events/batch/{batch['id']}", headers=headers).json()
    assert path["total_events"] == 1
    assert path["events"][0]["event_metadata"] == {"truck": "MH-12-AB-1234"}

    analytics = client.get(
        "/api/v1/supply-chain-events/analytics", params={"mine": True}, headers=headers).json()
    assert analytics["by_event_type"] == {"TRANSFER": 1}


def test_event_cannot_reference_two_subjects(
    client, auth_headers, manufacturer: User, manufacturer_org: Organization,
    create_batch, create_finished_good
):
    good = create_finished_good()
    batch = create_batch()

    response = _record(
        client, auth_headers(manufacturer), manufacturer_org, manufacturer_org,
        raw_material_batch_id=batch["id"], finished_good_id=good["id"])

    assert response.status_code == 400


def test_event_unknown_organization(client, auth_headers, manufacturer: User, manufacturer_org: Organization):
    response = client.post("/api/v1/supply-chain-events/", json={
        "event_type": "STORAGE",
        "from_location_id": str(manufacturer_org.id),
        "to_location_id": "00000000-0000-0000-0000-000000000000",
    }, headers=auth_headers(manufacturer))

    assert response.status_code == 404


def test_unanchored_event_is_editable_by_handler(
    client, auth_headers, manufacturer: User, farmer: User, manufacturer_org: Organization
):
    headers = auth_headers(manufacturer)
    event = _record(client, headers, manufacturer_org, manufacturer_org).json()

    other = client.patch(
        f"/api/v1/supply-chain-events/{event['id']}", json={"notes": "x"}, headers=auth_headers(farmer))
    assert other.status_code == 403

    response = client.patch(
        f"/api/v1/supply-chain-events/{event['id']}", json={"notes": "Sealed at dock 4"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["notes"] == "Sealed at dock 4"


def test_event_referenced_by_qr_is_immutable(
    client, auth_headers, manufacturer: User, manufacturer_org: Organization
):
    headers = auth_headers(manufacturer)
    event = _record(client, headers, manufacturer_org, manufacturer_org).json()
    client.post("/api/v1/qr-codes/", json={
        "entity_type": "SUPPLY_CHAIN_EVENT",
        "entity_id": event["id"],
    }, headers=headers)

    edit = client.patch(
        f"/api/v1/supply-chain-events/{event['id']}", json={"notes": "rewrite"}, headers=headers)
    delete = client.delete(f"/api/v1/supply-chain-events/{event['id']}", headers=headers)

    assert edit.status_code == 409
    assert delete.status_code == 409
