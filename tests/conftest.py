import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from db import get_session
from main import app
from models import User
from security import ROLE_ADMIN, ROLE_USER, Principal, hash_password

USER_PAYLOAD = {
    "full_name": "Asha Rao",
    "email": "asha@foodshare.org",
    "password": "secret123",
    "phone": "9876543210",
    "city": "Pune",
    "pincode": "411001",
    "address": "12 MG Road",
}

ADMIN_PAYLOAD = {
    "full_name": "Site Admin",
    "email": "admin@foodshare.org",
    "password": "adminpass",
    "phone": "9000000001",
    "city": "Pune",
    "pincode": "411001",
    "address": "1 Office Lane",
}

DONATION_PAYLOAD = {
    "full_name": "A",
    "email": "a@x.com",
    "phone": "9876543210",
    "food_type": "veg",
    "full_address": "1 Rd",
    "food_quantity": "5",
}


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(engine):
    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def make_user(session, email="asha@foodshare.org", phone="9876543210") -> User:
    user = User(
        full_name="Asha Rao",
        email=email,
        password_hash=hash_password("secret123"),
        phone=phone,
        city="Pune",
        pincode="411001",
        address="12 MG Road",
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def principal_for(user) -> Principal:
    return Principal(role=ROLE_USER, id=user.id, email=user.email)


ADMIN = Principal(role=ROLE_ADMIN, id="a" * 32, email="admin@foodshare.org")


def login(client, path, email, password) -> dict:
    """Log in and return bearer headers; the cookie is dropped so calls stay explicit."""
    response = client.post(path, json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['data']['access_token']}"}


@pytest.fixture(name="user_headers")
def user_headers_fixture(client):
    response = client.post("/users/register", json=USER_PAYLOAD)
    assert response.status_code == 201, response.text
    return login(client, "/users/login", USER_PAYLOAD["email"], USER_PAYLOAD["password"])


@pytest.fixture(name="other_user_headers")
def other_user_headers_fixture(client):
    payload = {**USER_PAYLOAD, "email": "ravi@foodshare.org", "phone": "9123456780"}
    response = client.post("/users/register", json=payload)
    assert response.status_code == 201, response.text
    return login(client, "/users/login", payload["email"], payload["password"])


@pytest.fixture(name="admin_headers")
def admin_headers_fixture(client):
    response = client.post("/admin/register", json=ADMIN_PAYLOAD)
    assert response.status_code == 201, response.text
    return login(client, "/admin/login", ADMIN_PAYLOAD["email"], ADMIN_PAYLOAD["password"])
