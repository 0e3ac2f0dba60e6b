# tests/test_batches.py

"""
Collection events and the raw material batches built from them.
"""

from sqlmodel import Session, select

from app.db.schema import CollectionEvent, Document, SupplyChainEvent, User


def test_create_collection(client, auth_headers, farmer: User):
    response = client.post("/api/v1/collections/", json={
        "quantity_kg": 25.5,
        "initial_quality_metrics": {"moisture": 12.5, "color": "brown"},
        "location": {"latitude": 23.25, "longitude": 77.41},
        "notes": "Morning harvest",
    }, headers=auth_headers(farmer))

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["collector_id"] == str(farmer.id)
    assert data["farmer_id"] == str(farmer.id)
    assert data["unit"] == "KG"
    assert data["quantity"] == 25.5
    assert data["raw_material_batch_id"] is None


def test_collection_photo_becomes_document(client, engine, auth_headers, farmer: User):
    response = client.post("/api/v1/collections/", json={
        "quantity_kg": 5,
        "location": {"latitude": 10.0, "longitude": 76.0},
        "photo_url": "https://cdn.example.com/harvest/field-1.jpg",
    }, headers=auth_headers(farmer))

    assert response.status_code == 201
    event_id = response.json()["id"]

    with Session(engine) as session:
        photo = session.exec(select(Document)).one()
        assert str(photo.collection_event_id) == event_id
        assert photo.document_type.value == "PHOTO"


def test_collection_rejects_bad_coordinates(client, auth_headers, farmer: User):
    response = client.post("/api/v1/collections/", json={
        "quantity_kg": 5,
        "location": {"latitude": 123.0, "longitude": 76.0},
    }, headers=auth_headers(farmer))

    assert response.status_code == 400


def test_collection_unknown_species(client, auth_headers, farmer: User):
    response = client.post("/api/v1/collections/", json={
        "quantity_kg": 5,
        "species_id": "00000000-0000-0000-0000-000000000000",
        "location": {"latitude": 10.0, "longitude": 76.0},
    }, headers=auth_headers(farmer))

    assert response.status_code == 404


def test_batch_claims_collection_events(client, engine, create_collection, create_batch):
    """
    Creating a batch sets the back-link on every listed collection event.
    """
    first = create_collection(10)
    second = create_collection(15)

    batch = create_batch(event_ids=[first["id"], second["id"]])

    assert batch["status"] == "CREATED"
    assert set(batch["collection_event_ids"]) == {first["id"], second["id"]}

    with Session(engine) as session:
        events = session.exec(select(CollectionEvent)).all()
        assert {str(e.raw_material_batch_id) for e in events} == {batch["id"]}


def test_collection_event_cannot_join_two_batches(
    client, auth_headers, manufacturer: User, create_collection, create_batch
):
    event = create_collection()
    create_batch(event_ids=[event["id"]])

    response = client.post("/api/v1/raw-material-batches/", json={
        "herb_name": "Ashwagandha",
        "quantity": 50,
        "unit": "KG",
        "collection_event_ids": [event["id"]],
    }, headers=auth_headers(manufacturer))

    assert response.status_code == 409


def test_batch_with_unknown_collection_event(client, auth_headers, manufacturer: User):
    response = client.post("/api/v1/raw-material-batches/", json={
        "herb_name": "Tulsi",
        "quantity": 50,
        "unit": "KG",
        "collection_event_ids": ["00000000-0000-0000-0000-000000000000"],
    }, headers=auth_headers(manufacturer))

    assert response.status_code == 404


def test_batch_requires_collection_events(client, auth_headers, manufacturer: User):
    response = client.post("/api/v1/raw-material-batches/", json={
        "herb_name": "Tulsi",
        "quantity": 50,
        "unit": "KG",
        "collection_event_ids": [],
    }, headers=auth_headers(manufacturer))

    assert response.status_code == 400


def test_unbatched_filter(client, auth_headers, farmer: User, create_collection, create_batch):
    batched = create_collection()
    loose = create_collection()
    create_batch(event_ids=[batched["id"]])

    response = client.get(
        "/api/v1/collections/", params={"unbatched_only": True}, headers=auth_headers(farmer))

    assert response.status_code == 200
    assert [e["id"] for e in response.json()["items"]] == [loose["id"]]


def test_batch_status_change_records_processing_event(
    client, engine, auth_headers, manufacturer: User, create_batch
):
    batch = create_batch()

    response = client.patch(
        f"/api/v1/raw-material-batches/{batch['id']}",
        json={"status": "IN_PROCESSING"},
        headers=auth_headers(manufacturer),
    )

    assert response.status_code == 200
    assert response.json()["status"] == "IN_PROCESSING"

    with Session(engine) as session:
        event = session.exec(select(SupplyChainEvent)).one()
        assert event.event_type.value == "PROCESSING"
        assert str(event.raw_material_batch_id) == batch["id"]
        assert event.event_metadata["previousStatus"] == "CREATED"
        assert event.event_metadata["status"] == "IN_PROCESSING"


def test_batch_status_cannot_move_backwards(client, auth_headers, manufacturer: User, create_batch):
    batch = create_batch()
    headers = auth_headers(manufacturer)

    client.patch(f"/api/v1/raw-material-batches/{batch['id']}",
                 json={"status": "IN_PROCESSING"}, headers=headers)
    client.patch(f"/api/v1/raw-material-batches/{batch['id']}",
                 json={"status": "PROCESSED"}, headers=headers)

    response = client.patch(f"/api/v1/raw-material-batches/{batch['id']}",
                            json={"status": "CREATED"}, headers=headers)

    assert response.status_code == 409
    assert "PROCESSED" in response.json()["detail"]


def test_batch_traceability(client, auth_headers, farmer: User, create_collection, create_batch):
    first = create_collection(10)
    second = create_collection(15)
    batch = create_batch(event_ids=[first["id"], second["id"]])

    response = client.get(
        f"/api/v1/raw-material-batches/{batch['id']}/traceability", headers=auth_headers(farmer))

    assert response.status_code == 200
    data = response.json()
    assert data["total_collected_quantity"] == 25
    assert data["farmers"] == [str(farmer.id)]
    assert len(data["collection_events"]) == 2


def test_delete_batch_releases_collection_events(
    client, engine, auth_headers, manufacturer: User, create_collection, create_batch
):
    event = create_collection()
    batch = create_batch(event_ids=[event["id"]])

    response = client.delete(
        f"/api/v1/raw-material-batches/{batch['id']}", headers=auth_headers(manufacturer))

    assert response.status_code == 200
    with Session(engine) as session:
        assert session.exec(select(CollectionEvent)).one().raw_material_batch_id is None
