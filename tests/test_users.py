"""Tests for user registration and the bootstrap seed."""
from app.models.product import Product
from app.models.user import User, UserRole
from app.seed import seed_database


def user_payload(**overrides):
    payload = {
        "name": "Laura Gomez",
        "email": "laura@example.com",
        "phone": "3001234567",
    }
    payload.update(overrides)
    return payload


def test_register_client_without_credentials(client):
    response = client.post("/api/v1/users/", json=user_payload(email="Laura@Example.com"))

    assert response.status_code == 201
    data = response.json()
    assert data["role"] == "cliente"
    assert data["email"] == "laura@example.com"
    assert data["active"] is True

    headers = {"X-User-Id": str(data["id"])}
    assert client.get("/api/v1/users/me", headers=headers).json()["name"] == "Laura Gomez"
    assert client.get("/api/v1/products/catalog", headers=headers).status_code == 200


def test_first_administrator_bootstraps_an_empty_deployment(client):
    response = client.post("/api/v1/users/", json=user_payload(role="administrador"))

    assert response.status_code == 201
    admin_id = response.json()["id"]
    headers = {"X-User-Id": str(admin_id)}
    assert client.get("/api/v1/products/", headers=headers).status_code == 200

    response = client.post(
        "/api/v1/users/", json=user_payload(email="second@example.com", role="administrador")
    )
    assert response.status_code == 403

    response = client.post(
        "/api/v1/users/",
        json=user_payload(email="second@example.com", role="administrador"),
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["role"] == "administrador"


def test_client_cannot_create_administrator(client, client_headers, admin_user):
    response = client.post(
        "/api/v1/users/", json=user_payload(role="administrador"), headers=client_headers
    )

    assert response.status_code == 403


def test_register_duplicate_email(client):
    client.post("/api/v1/users/", json=user_payload())

    response = client.post("/api/v1/users/", json=user_payload(email="LAURA@example.com", name="Other"))

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "DUPLICATE_EMAIL"
    assert body["details"] == {"email": "laura@example.com"}


def test_register_invalid_email(client):
    response = client.post("/api/v1/users/", json=user_payload(email="not-an-email"))

    assert response.status_code == 422


def test_update_my_profile(client, client_headers):
    response = client.put(
        "/api/v1/users/me", json={"name": "New Name", "phone": "555"}, headers=client_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "New Name"
    assert data["phone"] == "555"
    assert data["role"] == "cliente"


def test_get_user_as_admin(client, admin_headers, client_user):
    response = client.get(f"/api/v1/users/{client_user.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["email"] == client_user.email

    response = client.get("/api/v1/users/9999", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "USER_NOT_FOUND"


def test_get_user_requires_admin(client, client_headers, client_user):
    response = client.get(f"/api/v1/users/{client_user.id}", headers=client_headers)

    assert response.status_code == 403


def test_seed_creates_default_accounts_and_products(client, db_session):
    created = seed_database(db_session)

    assert created == {"users": 2, "products": 5}
    admin = db_session.query(User).filter(User.role == UserRole.ADMIN).one()
    assert admin.email == "admin@inventario.com"

    response = client.get("/api/v1/products/", headers={"X-User-Id": str(admin.id)})
    assert response.status_code == 200
    assert response.json()["total"] == 5


def test_seed_is_idempotent(db_session, make_user):
    make_user(name="Someone", email="admin@inventario.com", role=UserRole.ADMIN)

    assert seed_database(db_session) == {"users": 1, "products": 5}
    assert seed_database(db_session) == {"users": 0, "products": 0}
    assert db_session.query(User).count() == 2
    assert db_session.query(Product).count() == 5


def test_seed_without_products(db_session):
    assert seed_database(db_session, with_products=False) == {"users": 2, "products": 0}
    assert db_session.query(Product).count() == 0
