"""Shared pytest fixtures: an app wired to an in-memory MongoDB."""

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import load_settings
from main import create_app
from security import TokenService


@pytest.fixture
def settings():
    return load_settings({"jwt_secret": "test-secret", "cookie_secure": False})


@pytest.fixture
def db():
    return mongomock.MongoClient()["potions_test"]


@pytest.fixture
def client(settings, db):
    app = create_app(settings, db=db)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def tokens(settings):
    return TokenService(settings)


@pytest.fixture
def registered_user(client):
    resp = client.post("/auth/register", json={"name": "merlin", "password": "abracadabra"})
    assert resp.status_code == 201
    return {"name": "merlin", "password": "abracadabra"}


@pytest.fixture
def logged_in_client(client, registered_user):
    resp = client.post("/auth/login", json=registered_user)
    assert resp.status_code == 200
    return client


@pytest.fixture
def sample_potions(db):
    docs = [
        {
            "name": "Elixir of Vigor",
            "price": 10.0,
            "score": 4.0,
            "ingredients": ["mandrake", "honey"],
            "ratings": {"strength": 8, "flavor": 4},
            "categories": ["healing", "fire"],
            "vendor_id": "v1",
        },
        {
            "name": "Frost Draught",
            "price": 20.0,
            "score": 8.0,
            "ingredients": ["snowdrop"],
            "ratings": {"strength": 6, "flavor": 3},
            "categories": ["healing", "ice"],
            "vendor_id": "v2",
        },
        {
            "name": "Cheap Tonic",
            "price": 9.99,
            "score": 2.0,
            "ingredients": ["water"],
            "ratings": {"strength": 1, "flavor": 0},
            "categories": [],
            "vendor_id": "v1",
        },
        {
            "name": "Dragon Brew",
            "price": 20.01,
            "score": 9.0,
            "ingredients": ["dragon scale", "honey"],
            "ratings": {"strength": 10, "flavor": 5},
            "categories": ["fire"],
            "vendor_id": "v3",
        },
    ]
    db["potion"].insert_many(docs)
    return docs
