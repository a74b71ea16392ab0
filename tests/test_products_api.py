"""Tests for catalog endpoints"""
import uuid

from sqlmodel import Session

from conftest import make_token
from storefront.models.user import User

API = "/api/v1"


def staff_headers(engine, role):
    user = User(id=uuid.uuid4(), email=f"{role}@store.example.com", name=role, role=role)
    with Session(engine) as session:
        session.add(user)
        session.commit()
        return {"Authorization": f"Bearer {make_token(user.id, user.email)}"}


def test_list_hides_inactive(client, products):
    ids = {p["id"] for p in client.get(f"{API}/products").json()}
    assert "P4" not in ids
    assert {"P1", "P2", "P3", "P5"} <= ids


def test_get_by_id_or_tracking_id(client, products):
    assert client.get(f"{API}/products/P2").json()["name"] == "Chanderi Cotton"
    assert client.get(f"{API}/products/SAR-P2").json()["id"] == "P2"
    assert client.get(f"{API}/products/missing").status_code == 404


def test_shopper_cannot_create_product(client, auth_headers):
    response = client.post(
        f"{API}/products",
        json={"name": "Mysore Silk", "price": 9800},
        headers=auth_headers,
    )
    assert response.status_code == 403


def test_inventory_manager_creates_product(client, engine):
    response = client.post(
        f"{API}/products",
        json={"name": "Mysore Silk", "fabric": "silk", "price": 9800, "in_stock": 4},
        headers=staff_headers(engine, "inventory"),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["tracking_id"].startswith("SAR-")
    assert client.get(f"{API}/products/{body['tracking_id']}").status_code == 200


def test_duplicate_tracking_id_rejected(client, engine, products):
    response = client.post(
        f"{API}/products",
        json={"name": "Copy", "tracking_id": "sar-p1", "price": 100},
        headers=staff_headers(engine, "admin"),
    )
    assert response.status_code == 400
