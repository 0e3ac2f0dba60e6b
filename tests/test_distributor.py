# tests/test_distributor.py

"""
Distributor stock, shipments and verifications.
"""

import uuid

from sqlmodel import Session, select

from app.db.schema import Organization, OrgType, QRCode, SupplyChainEvent, SupplyChainEventType, User


def _receive(client, headers, entity_id: str, quantity: float = 40, product_type: str = "FINISHED_GOOD"):
    return client.post("/api/v1/distributor/inventory", json={
        "product_type": product_type,
        "entity_id": entity_id,
        "quantity": quantity,
        "unit": "KG",
        "location": "Pune Warehouse",
    }, headers=headers)


def _shipment_payload(recipient: Organization, good: dict, quantity: float) -> dict:
    return {
        "recipient_type": "RETAILER",
        "recipient_id": str(recipient.id),
        "recipient_address": "12 MG Road, Bengaluru",
        "total_value": 12000,
        "items": [{
            "product_type": "FINISHED_GOOD",
            "entity_id": good["id"],
            "product_name": good["product_name"],
            "quantity": quantity,
            "unit": "KG",
        }],
    }


def test_receive_stock_records_distribution_event(
    client, engine, auth_headers, distributor: User, create_finished_good
):
    """
    Stock of a finished good takes the product name and leaves a
    DISTRIBUTION ledger event with its QR code.
    """
    good = create_finished_good()

    response = _receive(client, auth_headers(distributor), good["id"])

    assert response.status_code == 201, response.text
    item = response.json()
    assert item["product_name"] == "Ashwagandha Root Powder"
    assert item["status"] == "IN_STOCK"

    with Session(engine) as session:
        event = session.exec(
            select(SupplyChainEvent).where(SupplyChainEvent.handler_id == distributor.id)
        ).one()
        assert event.event_type == SupplyChainEventType.DISTRIBUTION
        assert event.finished_good_id == uuid.UUID(good["id"])
        assert event.event_metadata["action"] == "INVENTORY_RECEIVED"

        qr = session.exec(select(QRCode).where(QRCode.entity_id == event.id)).one()
        assert qr.custom_data["productName"] == "Ashwagandha Root Powder"


def test_receive_unknown_entity(client, auth_headers, distributor: User):
    response = _receive(client, auth_headers(distributor), str(uuid.uuid4()), product_type="RAW_MATERIAL_BATCH")
    assert response.status_code == 404


def test_only_distributors_hold_stock(client, auth_headers, manufacturer: User, create_finished_good):
    good = create_finished_good()
    response = _receive(client, auth_headers(manufacturer), good["id"])
    assert response.status_code == 403


def test_zero_quantity_marks_out_of_stock(client, auth_headers, distributor: User, create_finished_good):
    good = create_finished_good()
    headers = auth_headers(distributor)
    item = _receive(client, headers, good["id"]).json()

    response = client.patch(
        f"/api/v1/distributor/inventory/{item['id']}", json={"quantity": 0}, headers=headers)

    assert response.status_code == 200
    assert response.json()["status"] == "OUT_OF_STOCK"


def test_shipment_draws_from_stock(
    client, auth_headers, distributor: User, manufacturer_org: Organization, create_finished_good
):
    good = create_finished_good()
    headers = auth_headers(distributor)
    item = _receive(client, headers, good["id"], quantity=40).json()

    response = client.post(
        "/api/v1/distributor/shipments", json=_shipment_payload(manufacturer_org, good, 15), headers=headers)

    assert response.status_code == 201, response.text
    shipment = response.json()
    assert shipment["status"] == "PREPARING"
    assert shipment["shipment_number"].startswith("DIST-")
    assert shipment["recipient_name"] == manufacturer_org.name
    assert len(shipment["items"]) == 1

    stock = client.get(
        "/api/v1/distributor/inventory", headers=headers).json()["items"]
    assert [s["quantity"] for s in stock if s["id"] == item["id"]] == [25]


def test_shipment_insufficient_stock(
    client, auth_headers, distributor: User, manufacturer_org: Organization, create_finished_good
):
    good = create_finished_good()
    headers = auth_headers(distributor)
    _receive(client, headers, good["id"], quantity=10)

    response = client.post(
        "/api/v1/distributor/shipments", json=_shipment_payload(manufacturer_org, good, 11), headers=headers)

    assert response.status_code == 409
    assert client.get("/api/v1/distributor/shipments", headers=headers).json()["total"] == 0


def test_emptied_line_does_not_block_new_stock(
    client, auth_headers, distributor: User, manufacturer_org: Organization, create_finished_good
):
    """
    Once the oldest line is shipped out, later shipments draw from stock
    received afterwards.
    """
    good = create_finished_good()
    headers = auth_headers(distributor)
    first_line = _receive(client, headers, good["id"], quantity=10).json()

    emptied = client.post(
        "/api/v1/distributor/shipments", json=_shipment_payload(manufacturer_org, good, 10), headers=headers)
    assert emptied.status_code == 201, emptied.text

    second_line = _receive(client, headers, good["id"], quantity=50).json()
    response = client.post(
        "/api/v1/distributor/shipments", json=_shipment_payload(manufacturer_org, good, 5), headers=headers)

    assert response.status_code == 201, response.text
    stock = {s["id"]: s for s in client.get("/api/v1/distributor/inventory", headers=headers).json()["items"]}
    assert stock[first_line["id"]]["quantity"] == 0
    assert stock[first_line["id"]]["status"] == "OUT_OF_STOCK"
    assert stock[second_line["id"]]["quantity"] == 45


def test_shipment_draws_across_lines_oldest_first(
    client, auth_headers, distributor: User, manufacturer_org: Organization, create_finished_good
):
    good = create_finished_good()
    headers = auth_headers(distributor)
    older = _receive(client, headers, good["id"], quantity=10).json()
    newer = _receive(client, headers, good["id"], quantity=20).json()

    response = client.post(
        "/api/v1/distributor/shipments", json=_shipment_payload(manufacturer_org, good, 25), headers=headers)

    assert response.status_code == 201, response.text
    stock = {s["id"]: s for s in client.get("/api/v1/distributor/inventory", headers=headers).json()["items"]}
    assert stock[older["id"]]["quantity"] == 0
    assert stock[older["id"]]["status"] == "OUT_OF_STOCK"
    assert stock[newer["id"]]["quantity"] == 5
    assert stock[newer["id"]]["status"] == "IN_STOCK"

    short = client.post(
        "/api/v1/distributor/shipments", json=_shipment_payload(manufacturer_org, good, 6), headers=headers)
    assert short.status_code == 409
    assert "5 available" in short.json()["detail"]


def test_shipment_unknown_recipient(
    client, auth_headers, distributor: User, create_finished_good
):
    good = create_finished_good()
    headers = auth_headers(distributor)
    _receive(client, headers, good["id"])
    payload = _shipment_payload(Organization(id=uuid.uuid4(), name="x"), good, 1)

    response = client.post("/api/v1/distributor/shipments", json=payload, headers=headers)

    assert response.status_code == 404


def test_shipment_lifecycle(
    client, auth_headers, distributor: User, manufacturer_org: Organization, create_finished_good
):
    """
    DISPATCHED stamps the shipment date, DELIVERED stamps the actual
    delivery and closes the shipment.
    """
    good = create_finished_good()
    headers = auth_headers(distributor)
    _receive(client, headers, good["id"])
    shipment = client.post(
        "/api/v1/distributor/shipments", json=_shipment_payload(manufacturer_org, good, 5), headers=headers
    ).json()
    url = f"/api/v1/distributor/shipments/{shipment['id']}/status"

    dispatched = client.patch(url, json={"status": "DISPATCHED", "tracking_number": "BD123"}, headers=headers)
    assert dispatched.status_code == 200
    assert dispatched.json()["shipment_date"]
    assert dispatched.json()["tracking_number"] == "BD123"

    delivered = client.patch(url, json={"status": "DELIVERED"}, headers=headers)
    assert delivered.json()["actual_delivery"]

    reopened = client.patch(url, json={"status": "PREPARING"}, headers=headers)
    assert reopened.status_code == 409

    metrics = client.get("/api/v1/distributor/metrics", headers=headers).json()
    assert metrics["total_shipments"] == 1
    assert metrics["delivered_shipments"] == 1

    analytics = client.get("/api/v1/distributor/analytics", headers=headers).json()
    assert analytics["shipments_by_status"] == {"DELIVERED": 1}
    assert analytics["total_shipped_value"] == 12000


def test_shipment_of_another_distributor_is_hidden(
    client, auth_headers, distributor: User, user_factory, org_factory,
    manufacturer_org: Organization, create_finished_good
):
    good = create_finished_good()
    headers = auth_headers(distributor)
    _receive(client, headers, good["id"])
    shipment = client.post(
        "/api/v1/distributor/shipments", json=_shipment_payload(manufacturer_org, good, 5), headers=headers
    ).json()

    rival = user_factory(org_factory(OrgType.DISTRIBUTOR, "Coastal Logistics"), "ops@coastal.in")

    response = client.get(f"/api/v1/distributor/shipments/{shipment['id']}", headers=auth_headers(rival))

    assert response.status_code == 404


def test_verification_flow(client, auth_headers, distributor: User, create_batch):
    batch = create_batch()
    headers = auth_headers(distributor)

    response = client.post("/api/v1/distributor/verifications", json={
        "verification_type": "BATCH_VERIFICATION",
        "entity_type": "RAW_MATERIAL_BATCH",
        "entity_id": batch["id"],
    }, headers=headers)

    assert response.status_code == 201, response.text
    verification = response.json()
    assert verification["status"] == "PENDING"
    assert verification["verification_number"].startswith("DVR-")

    url = f"/api/v1/distributor/verifications/{verification['id']}"
    verified = client.patch(url, json={"status": "VERIFIED", "results": {"seal": "intact"}}, headers=headers)
    assert verified.status_code == 200
    assert verified.json()["verified_at"]

    again = client.patch(url, json={"status": "IN_PROGRESS"}, headers=headers)
    assert again.status_code == 409


def test_verification_of_missing_entity(client, auth_headers, distributor: User):
    response = client.post("/api/v1/distributor/verifications", json={
        "verification_type": "QUALITY_CHECK",
        "entity_type": "INVENTORY_ITEM",
        "entity_id": str(uuid.uuid4()),
    }, headers=auth_headers(distributor))

    assert response.status_code == 404
