# tests/test_notary.py

"""
Payload projections and the HTTP client for the blockchain notary.
"""

import uuid
from datetime import datetime

import httpx
import pytest

from app.db.schema import (
    CollectionEvent, FinishedGood, FinishedGoodProductType, Organization, QuantityUnit,
    SupplyChainEvent, SupplyChainEventType, User
)
from app.services import supply_chain
from app.services.notary import (
    NotaryClient, NotaryProjectionError, format_coordinates, project_collection_event,
    project_finished_good, project_supply_chain_event, reverse_geocode
)


def _collection_event(**kwargs) -> CollectionEvent:
    farmer_id = uuid.uuid4()
    values = {
        "collector_id": farmer_id,
        "farmer_id": farmer_id,
        "quantity": 25.5,
        "unit": QuantityUnit.KG,
        "latitude": 23.25,
        "longitude": 77.41,
        "collection_date": datetime(2024, 3, 12, 8, 30),
        **kwargs,
    }
    return CollectionEvent(**values)


def test_collection_projection_replaces_nulls():
    event = _collection_event()

    payload = project_collection_event(event)

    assert payload["herbSpeciesId"] == ""
    assert payload["location"] == "23.25, 77.41"
    assert payload["geoTag"] == "geo:23.25,77.41"
    assert payload["unit"] == "KG"
    assert payload["quantity"] == 25.5
    assert payload["qualityNotes"] == "No quality notes provided"
    assert payload["collectionDate"] == "2024-03-12T08:30:00"


def test_collection_projection_uses_resolved_location():
    payload = project_collection_event(_collection_event(), location="Bhopal, Madhya Pradesh, India")
    assert payload["location"] == "Bhopal, Madhya Pradesh, India"


def test_format_coordinates_defaults_to_zero():
    assert format_coordinates(None, None) == "0, 0"


def _finished_good(**kwargs) -> FinishedGood:
    values = {
        "product_name": "Ashwagandha Root Powder",
        "product_type": FinishedGoodProductType.POWDER,
        "quantity": 500,
        "unit": QuantityUnit.KG,
        "manufacturer_id": uuid.uuid4(),
        "organization_id": uuid.uuid4(),
        **kwargs,
    }
    return FinishedGood(**values)


def test_finished_good_projection():
    source_ids = [uuid.uuid4(), uuid.uuid4()]
    good = _finished_good(batch_number="ASH-2024-001")

    payload = project_finished_good(good, source_ids)

    assert payload["batchNumber"] == "ASH-2024-001"
    assert payload["productType"] == "POWDER"
    assert payload["description"] == ""
    assert payload["expiryDate"] == ""
    assert payload["sourceCollectionEventIds"] == [str(i) for i in source_ids]


def test_finished_good_without_batch_number_is_not_projected():
    with pytest.raises(NotaryProjectionError):
        project_finished_good(_finished_good(batch_number=None))


def test_client_posts_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["agent"] = request.headers["User-Agent"]
        return httpx.Response(201, json={"txHash": "0xabc"})

    client = NotaryClient(base_url="http://notary.test/api/", transport=httpx.MockTransport(handler))
    result = client.submit(NotaryClient.COLLECTION_EVENT, {"eventId": "1"})

    assert result.success is True
    assert result.status == 201
    assert result.data == {"txHash": "0xabc"}
    assert seen["url"] == "http://notary.test/api/collectionEvent"
    assert seen["agent"].startswith("AyuTrace")


def test_client_reports_rejection():
    transport = httpx.MockTransport(lambda request: httpx.Response(422, text="bad payload"))
    client = NotaryClient(base_url="http://notary.test", transport=transport)

    result = client.submit(NotaryClient.FINISHED_GOOD, {})

    assert result.success is False
    assert result.status == 422
    assert result.error == "HTTP 422"


def test_client_swallows_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = NotaryClient(base_url="http://notary.test", transport=httpx.MockTransport(handler))
    result = client.submit(NotaryClient.SUPPLY_CHAIN_EVENT, {})

    assert result.success is False
    assert "connection refused" in result.error


def test_client_disabled_without_base_url():
    result = NotaryClient(base_url="").submit(NotaryClient.COLLECTION_EVENT, {})

    assert result.success is False
    assert result.status is None


def test_reverse_geocode_formats_place():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={
        "address": {"city": "Bhopal", "state": "Madhya Pradesh", "country": "India"}
    }))

    with httpx.Client(transport=transport) as http:
        assert reverse_geocode(23.25, 77.41, client=http) == "Bhopal, Madhya Pradesh, India"


def test_reverse_geocode_falls_back_to_coordinates():
    transport = httpx.MockTransport(lambda request: httpx.Response(503))

    with httpx.Client(transport=transport) as http:
        assert reverse_geocode(23.25, 77.41, client=http) == "23.25, 77.41"


# --- Ledger events ---

@pytest.fixture
def notary_calls(monkeypatch):
    """Captures ledger-event submissions instead of sending them."""
    calls = []
    monkeypatch.setattr(supply_chain, "notarize", lambda path, payload: calls.append((path, payload)))
    return calls


def test_ledger_event_projection_has_no_nulls():
    event = SupplyChainEvent(
        event_type=SupplyChainEventType.TRANSFER,
        handler_id=uuid.uuid4(),
        from_location_id=uuid.uuid4(),
        to_location_id=uuid.uuid4(),
        timestamp=datetime(2024, 3, 14, 10, 0),
    )

    payload = project_supply_chain_event(event)

    assert None not in payload.values()
    assert payload["eventType"] == "TRANSFER"
    assert payload["rawMaterialBatchId"] == ""
    assert payload["notes"] == ""
    assert payload["timestamp"] == "2024-03-14T10:00:00"


def test_lab_test_event_is_submitted_to_notary(
    client, auth_headers, lab_user: User, create_finished_good, notary_calls
):
    """
    Opening a lab test writes a TESTING ledger event, which is then queued
    for the notary with a null-free projection.
    """
    good = create_finished_good()

    test = client.post("/api/v1/labs/tests", json={
        "test_type": "MOISTURE_CONTENT",
        "sample_name": "Root Powder Sample",
        "sample_type": "POWDER",
        "collection_date": "2024-03-12T08:30:00",
        "finished_good_id": good["id"],
    }, headers=auth_headers(lab_user)).json()

    assert len(notary_calls) == 1
    path, payload = notary_calls[0]
    assert path == NotaryClient.SUPPLY_CHAIN_EVENT
    assert payload["eventId"] == test["supply_chain_event_id"]
    assert payload["eventType"] == "TESTING"
    assert payload["finishedGoodId"] == good["id"]
    assert payload["rawMaterialBatchId"] == ""
    assert None not in payload.values()


def test_manual_ledger_event_is_submitted_to_notary(
    client, auth_headers, manufacturer: User, manufacturer_org: Organization, notary_calls
):
    response = client.post("/api/v1/supply-chain-events/", json={
        "event_type": "STORAGE",
        "from_location_id": str(manufacturer_org.id),
        "to_location_id": str(manufacturer_org.id),
    }, headers=auth_headers(manufacturer))

    assert response.status_code == 201
    assert [(p, body["eventId"]) for p, body in notary_calls] == [
        (NotaryClient.SUPPLY_CHAIN_EVENT, response.json()["id"])
    ]


def test_failed_ledger_event_is_not_submitted(
    client, auth_headers, lab_user: User, notary_calls, monkeypatch
):
    def _fail(*args, **kwargs):
        raise RuntimeError("ledger unavailable")

    monkeypatch.setattr(supply_chain.SupplyChainService, "create_event", _fail)

    response = client.post("/api/v1/labs/tests", json={
        "test_type": "MOISTURE_CONTENT",
        "sample_name": "Root Powder Sample",
        "sample_type": "POWDER",
        "collection_date": "2024-03-12T08:30:00",
    }, headers=auth_headers(lab_user))

    assert response.status_code == 201
    assert notary_calls == []
