# tests/test_auth.py

"""
Registration, sign-in and token handling.
"""

from app.db.schema import Organization, User

TEST_PASSWORD = "testpassword123"


def test_register_joins_existing_organization(client, farmer_org: Organization):
    """
    A new user takes the org type of the organization they join and gets
    a token pair straight away.
    """
    response = client.post("/api/v1/auth/register", json={
        "first_name": "Sita",
        "last_name": "Devi",
        "email": "Sita@GreenValley.in",
        "password": "strongpass123",
        "organization_id": str(farmer_org.id),
    })

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["user"]["email"] == "sita@greenvalley.in"
    assert data["user"]["org_type"] == "FARMER"
    assert data["user"]["role"] == "USER"
    assert data["tokens"]["token_type"] == "bearer"
    assert data["tokens"]["access_token"]
    assert data["tokens"]["refresh_token"]


def test_register_duplicate_email(client, farmer: User, farmer_org: Organization):
    response = client.post("/api/v1/auth/register", json={
        "first_name": "Ravi",
        "last_name": "Kumar",
        "email": farmer.email,
        "password": "strongpass123",
        "organization_id": str(farmer_org.id),
    })

    assert response.status_code == 409


def test_register_unknown_organization(client):
    response = client.post("/api/v1/auth/register", json={
        "first_name": "Ghost",
        "last_name": "User",
        "email": "ghost@example.com",
        "password": "strongpass123",
        "organization_id": "00000000-0000-0000-0000-000000000000",
    })

    assert response.status_code == 404


def test_register_into_admin_organization_is_forbidden(client, admin_org: Organization):
    response = client.post("/api/v1/auth/register", json={
        "first_name": "Sneaky",
        "last_name": "User",
        "email": "sneaky@example.com",
        "password": "strongpass123",
        "organization_id": str(admin_org.id),
    })

    assert response.status_code == 403


def test_register_validation_error_shape(client, farmer_org: Organization):
    """
    Body validation failures come back as 400 with per-field messages.
    """
    response = client.post("/api/v1/auth/register", json={
        "first_name": "Short",
        "last_name": "Pass",
        "email": "not-an-email",
        "password": "123",
        "organization_id": str(farmer_org.id),
    })

    assert response.status_code == 400
    data = response.json()
    assert data["detail"] == "Validation failed"
    fields = {e["field"] for e in data["errors"]}
    assert "email" in fields
    assert "password" in fields


def test_login_success(client, farmer: User):
    response = client.post("/api/v1/auth/login", json={
        "email": farmer.email,
        "password": TEST_PASSWORD,
    })

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert "access_token" in data
    assert "refresh_token" in data


def test_login_wrong_password(client, farmer: User):
    response = client.post("/api/v1/auth/login", json={
        "email": farmer.email,
        "password": "wrong_password",
    })

    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect email or password"


def test_login_inactive_user(client, user_factory, farmer_org: Organization):
    inactive = user_factory(farmer_org, "inactive@greenvalley.in", is_active=False)

    response = client.post("/api/v1/auth/login", json={
        "email": inactive.email,
        "password": TEST_PASSWORD,
    })

    assert response.status_code == 403


def test_refresh_issues_new_access_token(client, farmer: User):
    tokens = client.post("/api/v1/auth/login", json={
        "email": farmer.email,
        "password": TEST_PASSWORD,
    }).json()

    response = client.post(
        "/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

    assert response.status_code == 200
    assert response.json()["access_token"]


def test_refresh_rejects_access_token(client, farmer: User):
    """An access token must not be accepted where a refresh token is expected."""
    tokens = client.post("/api/v1/auth/login", json={
        "email": farmer.email,
        "password": TEST_PASSWORD,
    }).json()

    response = client.post(
        "/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})

    assert response.status_code == 401


def test_me(client, auth_headers, farmer: User):
    response = client.get("/api/v1/auth/me", headers=auth_headers(farmer))

    assert response.status_code == 200
    assert response.json()["id"] == str(farmer.id)


def test_me_without_token(client):
    response = client.get("/api/v1/auth/me")
    assert response.status_code == 401


def test_org_gated_route_rejects_other_org_types(client, auth_headers, manufacturer: User):
    response = client.post(
        "/api/v1/collections/",
        json={"quantity_kg": 10, "location": {"latitude": 1, "longitude": 2}},
        headers=auth_headers(manufacturer),
    )
    assert response.status_code == 403


def test_enums_hide_admin_org_type(client):
    response = client.get("/api/v1/enums/")

    assert response.status_code == 200
    data = response.json()
    assert "ADMIN" not in data["orgTypes"]
    assert "LABS" in data["orgTypes"]
    assert "HEAVY_METALS_ANALYSIS" in data["testTypes"]


def test_readiness(client):
    response = client.get("/api/v1/readiness")

    assert response.status_code == 200
    assert response.json()["database"] == "online"
