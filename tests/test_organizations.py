# tests/test_organizations.py

"""
Organization directory and herb species registry.
"""

from sqlmodel import Session, select

from app.db.schema import AdminAction, Organization, User


def test_list_organizations_is_public(client, farmer_org: Organization, lab_org: Organization):
    response = client.get("/api/v1/organizations/")

    assert response.status_code == 200
    names = {o["name"] for o in response.json()}
    assert {farmer_org.name, lab_org.name} <= names


def test_list_organizations_filtered_by_type(client, farmer_org: Organization, lab_org: Organization):
    response = client.get("/api/v1/organizations/", params={"type": "LABS"})

    assert response.status_code == 200
    assert [o["type"] for o in response.json()] == ["LABS"]


def test_create_organization_requires_admin(client, auth_headers, farmer: User):
    response = client.post(
        "/api/v1/organizations/",
        json={"name": "Rogue Org", "type": "FARMER"},
        headers=auth_headers(farmer),
    )
    assert response.status_code == 403


def test_admin_creates_organization_and_action_is_logged(client, engine, auth_headers, admin_user: User):
    """
    The admin action is written by a background task after the response.
    """
    response = client.post(
        "/api/v1/organizations/",
        json={"name": "Kerala Spice Growers", "type": "FARMER"},
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 201, response.text
    org_id = response.json()["id"]

    with Session(engine) as session:
        action = session.exec(select(AdminAction)).one()
        assert action.action_type.value == "ORGANIZATION_CREATED"
        assert str(action.target_id) == org_id
        assert action.admin_id == admin_user.id


def test_create_organization_duplicate_name(client, auth_headers, admin_user: User, farmer_org: Organization):
    response = client.post(
        "/api/v1/organizations/",
        json={"name": farmer_org.name, "type": "FARMER"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 409


def test_delete_organization_with_users_conflicts(
    client, auth_headers, admin_user: User, farmer: User, farmer_org: Organization
):
    response = client.delete(
        f"/api/v1/organizations/{farmer_org.id}", headers=auth_headers(admin_user))
    assert response.status_code == 409


# --- Species ---

ASHWAGANDHA = {
    "scientific_name": "Withania somnifera",
    "common_name": "Ashwagandha",
    "family": "Solanaceae",
    "regions": ["Madhya Pradesh", "Rajasthan"],
    "medicinal_uses": ["adaptogen", "sleep aid"],
}


def test_create_species(client, auth_headers, farmer: User):
    response = client.post("/api/v1/species/", json=ASHWAGANDHA, headers=auth_headers(farmer))

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["common_name"] == "Ashwagandha"
    assert data["conservation_status"] == "LEAST_CONCERN"


def test_create_species_duplicate_scientific_name(client, auth_headers, farmer: User):
    client.post("/api/v1/species/", json=ASHWAGANDHA, headers=auth_headers(farmer))

    response = client.post(
        "/api/v1/species/",
        json={**ASHWAGANDHA, "scientific_name": "WITHANIA SOMNIFERA"},
        headers=auth_headers(farmer),
    )

    assert response.status_code == 409


def test_endangered_and_lookup_routes(client, auth_headers, farmer: User):
    headers = auth_headers(farmer)
    client.post("/api/v1/species/", json=ASHWAGANDHA, headers=headers)
    client.post("/api/v1/species/", json={
        "scientific_name": "Nardostachys jatamansi",
        "common_name": "Jatamansi",
        "regions": ["Himachal Pradesh"],
        "conservation_status": "CRITICALLY_ENDANGERED",
        "medicinal_uses": ["sedative"],
    }, headers=headers)

    endangered = client.get("/api/v1/species/endangered", headers=headers)
    assert endangered.status_code == 200
    assert [s["common_name"] for s in endangered.json()] == ["Jatamansi"]

    by_region = client.get("/api/v1/species/region/rajasthan", headers=headers)
    assert [s["common_name"] for s in by_region.json()] == ["Ashwagandha"]

    by_use = client.get(
        "/api/v1/species/search", params={"medicinal_use": "SEDATIVE"}, headers=headers)
    assert [s["common_name"] for s in by_use.json()] == ["Jatamansi"]

    listed = client.get("/api/v1/species/", params={"search": "withania"}, headers=headers)
    assert listed.json()["total"] == 1

    analytics = client.get("/api/v1/species/analytics", headers=headers).json()
    assert analytics["total_species"] == 2
    assert analytics["endangered_count"] == 1
