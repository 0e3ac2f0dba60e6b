# tests/test_qr_codes.py

"""
QR code generation, the public scan endpoint and image rendering.
"""

from app.db.schema import User


def _generate(client, headers, entity_type: str, entity_id: str, **custom_data) -> dict:
    response = client.post("/api/v1/qr-codes/", json={
        "entity_type": entity_type,
        "entity_id": entity_id,
        "custom_data": custom_data,
    }, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_scan_finished_good_round_trip(client, auth_headers, manufacturer: User, create_finished_good):
    """
    Scanning is public, counts every scan and returns the traceability of
    the product.
    """
    good = create_finished_good()
    qr = _generate(client, auth_headers(manufacturer), "FINISHED_GOOD", good["id"], lot="A1")

    assert len(qr["qr_hash"]) == 32
    assert qr["scan_count"] == 0

    first = client.get(f"/api/v1/qr-codes/scan/{qr['qr_hash']}")
    second = client.get(f"/api/v1/qr-codes/scan/{qr['qr_hash']}")

    assert first.status_code == 200
    assert second.json()["qr_code"]["scan_count"] == 2
    assert second.json()["qr_code"]["last_scanned_at"]

    data = second.json()
    assert data["entity_type"] == "FINISHED_GOOD"
    assert data["entity"]["batch_number"] == good["batch_number"]
    assert data["related"]["traceability"]["herbs"] == ["Ashwagandha"]


def test_scan_ledger_event_lists_lab_tests(client, auth_headers, lab_user: User, create_finished_good):
    good = create_finished_good()
    test = client.post("/api/v1/labs/tests", json={
        "test_type": "ADULTERATION_TESTING",
        "sample_name": "Root Powder Sample",
        "sample_type": "POWDER",
        "collection_date": "2024-03-12T08:30:00",
        "finished_good_id": good["id"],
    }, headers=auth_headers(lab_user)).json()

    codes = client.get("/api/v1/qr-codes/", headers=auth_headers(lab_user)).json()
    assert codes["total"] == 1
    qr_hash = codes["items"][0]["qr_hash"]

    response = client.get(f"/api/v1/qr-codes/scan/{qr_hash}")

    assert response.status_code == 200
    related = response.json()["related"]
    assert related["finished_good"]["id"] == good["id"]
    assert [t["id"] for t in related["lab_tests"]] == [test["id"]]


def test_scan_unknown_hash(client):
    response = client.get(f"/api/v1/qr-codes/scan/{'f' * 32}")
    assert response.status_code == 404


def test_deactivated_code_cannot_be_scanned(client, auth_headers, manufacturer: User, create_batch):
    batch = create_batch()
    headers = auth_headers(manufacturer)
    qr = _generate(client, headers, "RAW_MATERIAL_BATCH", batch["id"])

    response = client.patch(f"/api/v1/qr-codes/{qr['id']}", json={"is_active": False}, headers=headers)
    assert response.status_code == 200

    assert client.get(f"/api/v1/qr-codes/scan/{qr['qr_hash']}").status_code == 404


def test_generate_for_missing_entity(client, auth_headers, manufacturer: User):
    response = client.post("/api/v1/qr-codes/", json={
        "entity_type": "FINISHED_GOOD",
        "entity_id": "00000000-0000-0000-0000-000000000000",
    }, headers=auth_headers(manufacturer))

    assert response.status_code == 404


def test_only_creator_modifies_code(client, auth_headers, manufacturer: User, farmer: User, create_batch):
    batch = create_batch()
    qr = _generate(client, auth_headers(manufacturer), "RAW_MATERIAL_BATCH", batch["id"])

    response = client.delete(f"/api/v1/qr-codes/{qr['id']}", headers=auth_headers(farmer))

    assert response.status_code == 403


def test_image_formats(client, auth_headers, manufacturer: User, create_batch):
    batch = create_batch()
    headers = auth_headers(manufacturer)
    qr = _generate(client, headers, "RAW_MATERIAL_BATCH", batch["id"])

    png = client.get(f"/api/v1/qr-codes/{qr['id']}/image", headers=headers)
    assert png.status_code == 200
    assert png.headers["content-type"] == "image/png"
    assert png.content.startswith(b"\x89PNG")

    svg = client.get(f"/api/v1/qr-codes/{qr['id']}/image", params={"format": "svg"}, headers=headers)
    assert svg.status_code == 200
    assert svg.headers["content-type"].startswith("image/svg+xml")

    bad = client.get(f"/api/v1/qr-codes/{qr['id']}/image", params={"format": "gif"}, headers=headers)
    assert bad.status_code == 400


def test_analytics(client, auth_headers, manufacturer: User, create_batch):
    batch = create_batch()
    headers = auth_headers(manufacturer)
    qr = _generate(client, headers, "RAW_MATERIAL_BATCH", batch["id"])
    client.get(f"/api/v1/qr-codes/scan/{qr['qr_hash']}")

    analytics = client.get("/api/v1/qr-codes/analytics", headers=headers).json()

    assert analytics["total_codes"] == 1
    assert analytics["active_codes"] == 1
    assert analytics["total_scans"] == 1
    assert analytics["by_entity_type"] == {"RAW_MATERIAL_BATCH": 1}
