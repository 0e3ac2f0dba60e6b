# tests/conftest.py

import os
import tempfile

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STATIC_DIR"] = tempfile.mkdtemp(prefix="ayutrace-static-")
os.environ["LOG_FILE"] = ""
os.environ["NOTARY_BASE_URL"] = ""

from typing import Callable, Dict  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel, Session, create_engine  # noqa: E402

from app.db import core  # noqa: E402
from app.db.core import get_session  # noqa: E402
from app.db.schema import Organization, OrgType, User, UserRole  # noqa: E402
from app.main import app  # noqa: E402
from app.services.password import get_password_hash  # noqa: E402
from app.services.user import UserService  # noqa: E402


TEST_PASSWORD = "testpassword123"


# --- Database fixtures ---
@pytest.fixture(scope="function")
def engine(monkeypatch):
    """
    Fresh in-memory database per test. Background workers open their own
    sessions on `core.engine`, so the module attribute is swapped as well.
    """
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(test_engine)
    monkeypatch.setattr(core, "engine", test_engine)

    yield test_engine

    SQLModel.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(scope="function")
def client(engine):
    def _get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session_override
    yield TestClient(app)
    app.dependency_overrides.clear()


# --- Factories ---
@pytest.fixture(scope="function")
def org_factory(engine) -> Callable[..., Organization]:
    """Creates an organization of the given type and returns it detached."""
    def _create_org(org_type: OrgType, name: str = None, **kwargs) -> Organization:
        with Session(engine) as session:
            org = Organization(
                name=name or f"Test {org_type.value.title()} Org",
                type=org_type,
                is_active=True,
                **kwargs,
            )
            session.add(org)
            session.commit()
            session.refresh(org)
            return org
    return _create_org


@pytest.fixture(scope="function")
def user_factory(engine) -> Callable[..., User]:
    """
    Creates a user inside `organization`; org_type mirrors the organization
    as it does for real registrations.
    """
    def _create_user(
        organization: Organization,
        email: str,
        role: UserRole = UserRole.USER,
        is_active: bool = True,
        **kwargs,
    ) -> User:
        with Session(engine) as session:
            user = User(
                organization_id=organization.id,
                email=email,
                hashed_password=get_password_hash(TEST_PASSWORD),
                first_name=kwargs.pop("first_name", "Test"),
                last_name=kwargs.pop("last_name", "User"),
                role=role,
                org_type=organization.type,
                is_active=is_active,
                **kwargs,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            return user
    return _create_user


@pytest.fixture(scope="function")
def auth_headers(engine) -> Callable[[User], Dict[str, str]]:
    """Returns a function building a Bearer header for a user."""
    def _headers(user: User) -> Dict[str, str]:
        with Session(engine) as session:
            token = UserService(session).generate_access_token(user)
        return {"Authorization": f"Bearer {token}"}
    return _headers


# --- Organizations ---
@pytest.fixture(scope="function")
def farmer_org(org_factory) -> Organization:
    return org_factory(OrgType.FARMER, "Green Valley Farmers Co-op")


@pytest.fixture(scope="function")
def manufacturer_org(org_factory) -> Organization:
    return org_factory(OrgType.MANUFACTURER, "Himalaya Herbals Pvt Ltd")


@pytest.fixture(scope="function")
def lab_org(org_factory) -> Organization:
    return org_factory(OrgType.LABS, "Ayur Quality Labs")


@pytest.fixture(scope="function")
def distributor_org(org_factory) -> Organization:
    return org_factory(OrgType.DISTRIBUTOR, "Deccan Distributors")


@pytest.fixture(scope="function")
def admin_org(org_factory) -> Organization:
    return org_factory(OrgType.ADMIN, "Platform Administration")


# --- Users per role ---
@pytest.fixture(scope="function")
def farmer(user_factory, farmer_org) -> User:
    return user_factory(farmer_org, "ravi@greenvalley.in", first_name="Ravi", last_name="Kumar")


@pytest.fixture(scope="function")
def manufacturer(user_factory, manufacturer_org) -> User:
    return user_factory(manufacturer_org, "anita@himalaya.in", first_name="Anita")


@pytest.fixture(scope="function")
def lab_user(user_factory, lab_org) -> User:
    return user_factory(lab_org, "tech@ayurlabs.in", first_name="Meera")


@pytest.fixture(scope="function")
def distributor(user_factory, distributor_org) -> User:
    return user_factory(distributor_org, "ops@deccan.in", first_name="Arjun")


@pytest.fixture(scope="function")
def admin_user(user_factory, admin_org) -> User:
    return user_factory(admin_org, "admin@ayutrace.local", role=UserRole.ADMIN, is_verified=True)


@pytest.fixture(scope="function")
def super_admin(user_factory, admin_org) -> User:
    return user_factory(
        admin_org, "superadmin@ayutrace.local", role=UserRole.SUPER_ADMIN, is_verified=True)


# --- Supply-chain building blocks ---
@pytest.fixture(scope="function")
def create_collection(client, auth_headers, farmer) -> Callable[..., dict]:
    """Records a harvest as the farmer through the API."""
    def _create(quantity_kg: float = 25.5, **overrides) -> dict:
        payload = {
            "quantity_kg": quantity_kg,
            "initial_quality_metrics": {"moisture": 12.5},
            "location": {"latitude": 23.25, "longitude": 77.41},
            **overrides,
        }
        response = client.post(
            "/api/v1/collections/", json=payload, headers=auth_headers(farmer))
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture(scope="function")
def create_batch(client, auth_headers, manufacturer, create_collection) -> Callable[..., dict]:
    """Creates a raw material batch from fresh collection events."""
    def _create(herb_name: str = "Ashwagandha", event_ids=None, quantity: float = 100) -> dict:
        if event_ids is None:
            event_ids = [create_collection()["id"]]
        response = client.post(
            "/api/v1/raw-material-batches/",
            json={
                "herb_name": herb_name,
                "scientific_name": "Withania somnifera",
                "quantity": quantity,
                "unit": "KG",
                "collection_event_ids": event_ids,
            },
            headers=auth_headers(manufacturer),
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture(scope="function")
def create_finished_good(client, auth_headers, manufacturer, create_batch) -> Callable[..., dict]:
    def _create(batch_number: str = "ASH-2024-001", composition=None) -> dict:
        if composition is None:
            batch = create_batch()
            composition = [{
                "raw_material_batch_id": batch["id"],
                "percentage": 100,
                "quantity_used": 100,
            }]
        response = client.post(
            "/api/v1/finished-goods/",
            json={
                "product_name": "Ashwagandha Root Powder",
                "product_type": "POWDER",
                "quantity": 500,
                "unit": "KG",
                "batch_number": batch_number,
                "composition": composition,
            },
            headers=auth_headers(manufacturer),
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _create
