# tests/test_finished_goods.py

"""
Finished goods, their composition and farm-to-shelf traceability.
"""

from app.db.schema import User


def test_ashwagandha_farm_to_shelf(
    client, auth_headers, farmer: User, create_collection, create_batch, create_finished_good
):
    """
    Two harvests, one batch, one product: the product traces back to the
    farmer through the batch.
    """
    first = create_collection(40)
    second = create_collection(60)
    batch = create_batch(event_ids=[first["id"], second["id"]])

    good = create_finished_good(composition=[{
        "raw_material_batch_id": batch["id"],
        "percentage": 100,
        "quantity_used": 100,
    }])

    assert good["batch_number"] == "ASH-2024-001"
    assert good["composition"][0]["herb_name"] == "Ashwagandha"

    response = client.get(
        f"/api/v1/finished-goods/{good['id']}/traceability", headers=auth_headers(farmer))

    assert response.status_code == 200
    trace = response.json()
    assert trace["total_percentage"] == 100
    assert trace["herbs"] == ["Ashwagandha"]
    assert trace["farmer_ids"] == [str(farmer.id)]
    assert set(trace["sources"][0]["collection_event_ids"]) == {first["id"], second["id"]}


def test_composition_over_one_hundred_percent(client, auth_headers, manufacturer: User, create_batch):
    first = create_batch(herb_name="Ashwagandha")
    second = create_batch(herb_name="Tulsi")

    response = client.post("/api/v1/finished-goods/", json={
        "product_name": "Calm Blend",
        "product_type": "CAPSULE",
        "quantity": 1000,
        "unit": "PIECES",
        "composition": [
            {"raw_material_batch_id": first["id"], "percentage": 60, "quantity_used": 30},
            {"raw_material_batch_id": second["id"], "percentage": 50, "quantity_used": 25},
        ],
    }, headers=auth_headers(manufacturer))

    assert response.status_code == 400


def test_composition_rounding_to_one_hundred_is_accepted(
    client, auth_headers, manufacturer: User, create_batch
):
    batches = [create_batch(herb_name=name) for name in ("Ashwagandha", "Tulsi", "Brahmi")]

    response = client.post("/api/v1/finished-goods/", json={
        "product_name": "Triple Blend",
        "product_type": "TABLET",
        "quantity": 1000,
        "unit": "PIECES",
        "composition": [
            {"raw_material_batch_id": b["id"], "percentage": p, "quantity_used": 10}
            for b, p in zip(batches, (33.3, 33.3, 33.4))
        ],
    }, headers=auth_headers(manufacturer))

    assert response.status_code == 201, response.text
    assert len(response.json()["composition"]) == 3


def test_composition_unknown_batch(client, auth_headers, manufacturer: User):
    response = client.post("/api/v1/finished-goods/", json={
        "product_name": "Phantom Powder",
        "product_type": "POWDER",
        "quantity": 10,
        "unit": "KG",
        "composition": [{
            "raw_material_batch_id": "00000000-0000-0000-0000-000000000000",
            "percentage": 100,
            "quantity_used": 10,
        }],
    }, headers=auth_headers(manufacturer))

    assert response.status_code == 404


def test_duplicate_batch_number(client, auth_headers, manufacturer: User, create_batch, create_finished_good):
    create_finished_good(batch_number="ASH-2024-002")
    batch = create_batch()

    response = client.post("/api/v1/finished-goods/", json={
        "product_name": "Ashwagandha Capsules",
        "product_type": "CAPSULE",
        "quantity": 100,
        "unit": "BOTTLES",
        "batch_number": "ASH-2024-002",
        "composition": [{"raw_material_batch_id": batch["id"], "percentage": 100, "quantity_used": 5}],
    }, headers=auth_headers(manufacturer))

    assert response.status_code == 409


def test_only_manufacturers_create_finished_goods(client, auth_headers, farmer: User, create_batch):
    batch = create_batch()

    response = client.post("/api/v1/finished-goods/", json={
        "product_name": "Home Made Powder",
        "product_type": "POWDER",
        "quantity": 1,
        "unit": "KG",
        "composition": [{"raw_material_batch_id": batch["id"], "percentage": 100, "quantity_used": 1}],
    }, headers=auth_headers(farmer))

    assert response.status_code == 403


def test_batch_in_use_cannot_be_deleted(client, auth_headers, manufacturer: User, create_batch, create_finished_good):
    batch = create_batch()
    create_finished_good(composition=[
        {"raw_material_batch_id": batch["id"], "percentage": 100, "quantity_used": 100}])

    response = client.delete(
        f"/api/v1/raw-material-batches/{batch['id']}", headers=auth_headers(manufacturer))

    assert response.status_code == 409


def test_list_search_and_delete(client, auth_headers, manufacturer: User, create_finished_good):
    good = create_finished_good(batch_number="ASH-2024-003")
    headers = auth_headers(manufacturer)

    listed = client.get("/api/v1/finished-goods/", params={"search": "ash-2024-003"}, headers=headers)
    assert listed.json()["total"] == 1

    analytics = client.get("/api/v1/finished-goods/analytics", headers=headers).json()
    assert analytics["by_product_type"] == {"POWDER": 1}

    deleted = client.delete(f"/api/v1/finished-goods/{good['id']}", headers=headers)
    assert deleted.status_code == 200

    assert client.get(f"/api/v1/finished-goods/{good['id']}", headers=headers).status_code == 404
