# tests/test_admin.py

"""
Administration endpoints and the admin action log.
"""

from sqlmodel import Session, select

from app.db.schema import AdminAction, AdminActionType, User


def test_non_admin_is_rejected(client, auth_headers, farmer: User):
    response = client.get("/api/v1/admin/dashboard", headers=auth_headers(farmer))
    assert response.status_code == 403


def test_dashboard_counts(client, auth_headers, admin_user: User, farmer: User, create_batch):
    create_batch()

    response = client.get("/api/v1/admin/dashboard", headers=auth_headers(admin_user))

    assert response.status_code == 200
    data = response.json()
    assert data["total_raw_material_batches"] == 1
    assert data["organizations_by_type"]["FARMER"] == 1
    assert data["total_users"] >= 3


def test_list_users_filters(client, auth_headers, admin_user: User, farmer: User, manufacturer: User):
    response = client.get(
        "/api/v1/admin/users", params={"org_type": "FARMER"}, headers=auth_headers(admin_user))

    assert response.status_code == 200
    assert [u["email"] for u in response.json()["items"]] == [farmer.email]


def test_deactivate_user_is_logged(client, engine, auth_headers, admin_user: User, farmer: User):
    """
    Deactivation blocks further logins and leaves a USER_DEACTIVATED entry
    in the action log.
    """
    response = client.patch(
        f"/api/v1/admin/users/{farmer.id}/status",
        json={"is_active": False},
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 200
    assert response.json()["is_active"] is False

    with Session(engine) as session:
        action = session.exec(select(AdminAction)).one()
        assert action.action_type == AdminActionType.USER_DEACTIVATED
        assert action.admin_id == admin_user.id
        assert action.target_id == farmer.id

    login = client.post("/api/v1/auth/login", json={"email": farmer.email, "password": "testpassword123"})
    assert login.status_code == 403

    log = client.get(
        "/api/v1/admin/actions", params={"action_type": "USER_DEACTIVATED"}, headers=auth_headers(admin_user))
    assert log.json()["total"] == 1


def test_admin_cannot_deactivate_self(client, auth_headers, admin_user: User):
    response = client.patch(
        f"/api/v1/admin/users/{admin_user.id}/status",
        json={"is_active": False},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 400


def test_role_change_requires_super_admin(
    client, engine, auth_headers, admin_user: User, super_admin: User, farmer: User
):
    url = f"/api/v1/admin/users/{farmer.id}/role"

    assert client.patch(url, json={"role": "ADMIN"}, headers=auth_headers(admin_user)).status_code == 403

    response = client.patch(url, json={"role": "ADMIN"}, headers=auth_headers(super_admin))
    assert response.status_code == 200
    assert response.json()["role"] == "ADMIN"

    with Session(engine) as session:
        action = session.exec(select(AdminAction)).one()
        assert action.details == {"previous_role": "USER", "role": "ADMIN"}


def test_super_admin_creates_admin(client, auth_headers, super_admin: User, admin_org):
    payload = {
        "first_name": "Kavya",
        "last_name": "Rao",
        "email": "Kavya@AyuTrace.local",
        "password": "averysecurepassword",
    }

    response = client.post("/api/v1/admin/admins", json=payload, headers=auth_headers(super_admin))

    assert response.status_code == 201, response.text
    assert response.json()["email"] == "kavya@ayutrace.local"
    assert response.json()["role"] == "ADMIN"
    assert response.json()["organization_id"] == str(admin_org.id)

    duplicate = client.post("/api/v1/admin/admins", json=payload, headers=auth_headers(super_admin))
    assert duplicate.status_code == 409


def test_alert_lifecycle(client, auth_headers, admin_user: User):
    headers = auth_headers(admin_user)
    alert = client.post("/api/v1/admin/alerts", json={
        "alert_type": "NOTARY",
        "severity": "HIGH",
        "title": "Notary unreachable",
        "message": "Collection events are not being anchored.",
    }, headers=headers).json()

    assert alert["is_resolved"] is False
    dashboard = client.get("/api/v1/admin/dashboard", headers=headers).json()
    assert [a["id"] for a in dashboard["open_alerts"]] == [alert["id"]]

    resolved = client.patch(f"/api/v1/admin/alerts/{alert['id']}/resolve", headers=headers)
    assert resolved.status_code == 200
    assert resolved.json()["resolved_by_id"] == str(admin_user.id)

    again = client.patch(f"/api/v1/admin/alerts/{alert['id']}/resolve", headers=headers)
    assert again.status_code == 409

    open_alerts = client.get("/api/v1/admin/alerts", params={"is_resolved": False}, headers=headers).json()
    assert open_alerts["total"] == 0
