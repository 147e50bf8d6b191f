"""
Tests for the HTTP API.
"""

import tempfile
from datetime import date
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from cryptography.fernet import Fernet
from fastapi.testclient import TestClient

from fakes import FakeDocumentStore
from taskgraph.api import create_app
from taskgraph.config import OAuthConfig, SyncSettings
from taskgraph.models import ROOT_ID
from taskgraph.session import GraphSession
from taskgraph.sync import GoogleOAuthTokenProvider, SecureTokenStore, SyncEngine


@pytest.fixture
def client():
    session = GraphSession(clock=lambda: date(2024, 1, 10))
    with TestClient(create_app(session)) as test_client:
        yield test_client


def create(client, parent_id=ROOT_ID, **fields):
    response = client.post(f"/api/nodes/{parent_id}/children", json=fields)
    assert response.status_code == 201
    return response.json()["id"]


class TestGraphRoutes:
    """Tests for graph and node endpoints."""

    def test_get_graph_has_root(self, client):
        response = client.get("/api/graph")
        assert response.status_code == 200
        assert response.json()[ROOT_ID]["title"] == "Root Node"

    def test_create_child(self, client):
        node_id = create(client, title="Write report", dueDate="2024-01-12")
        graph = client.get("/api/graph").json()
        assert graph[ROOT_ID]["children"] == [node_id]
        assert graph[node_id]["dueDate"] == "2024-01-12"
        assert graph[node_id]["depth"] == 1

    def test_create_without_body(self, client):
        response = client.post(f"/api/nodes/{ROOT_ID}/children")
        assert response.status_code == 201

    def test_create_under_missing_parent(self, client):
        response = client.post("/api/nodes/ghost/children", json={})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "node_not_found"

    def test_invalid_field_values(self, client):
        assert client.post(f"/api/nodes/{ROOT_ID}/children", json={"dueDate": "soon"}).status_code == 422
        assert client.post(f"/api/nodes/{ROOT_ID}/children", json={"colour": "red"}).status_code == 422

    def test_patch_node(self, client):
        node_id = create(client, title="Draft")
        response = client.patch(f"/api/nodes/{node_id}", json={"title": "Final", "completed": True})
        assert response.json() == {"changed": True}
        assert client.get("/api/graph").json()[node_id]["completed"] is True

    def test_patch_type_conversion(self, client):
        node_id = create(client, title="Note")
        client.patch(f"/api/nodes/{node_id}", json={"type": "text", "content": "# Heading"})
        node = client.get("/api/graph").json()[node_id]
        assert node["type"] == "text"
        assert node["content"] == "# Heading"

    def test_patch_rejects_structural_change(self, client):
        parent = create(client)
        create(client, parent)
        response = client.patch(f"/api/nodes/{parent}", json={"children": ["other"]})
        assert response.status_code == 400

    def test_patch_missing_node(self, client):
        assert client.patch("/api/nodes/ghost", json={"title": "x"}).status_code == 404

    def test_delete_returns_next_selection(self, client):
        first = create(client)
        second = create(client)
        create(client, second)

        response = client.delete(f"/api/nodes/{second}")
        assert response.json() == {"select": first}
        assert set(client.get("/api/graph").json()) == {ROOT_ID, first}

    def test_delete_root_rejected(self, client):
        assert client.delete(f"/api/nodes/{ROOT_ID}").status_code == 400

    def test_reorder_children(self, client):
        a = create(client)
        b = create(client)
        response = client.post(f"/api/nodes/{ROOT_ID}/reorder", json={"positions": {a: 200, b: 100}})
        assert response.json() == {"changed": True}
        assert client.get("/api/graph").json()[ROOT_ID]["children"] == [b, a]

    def test_reorder_rejects_non_finite_position(self, client):
        a = create(client)
        b = create(client)
        response = client.post(
            f"/api/nodes/{ROOT_ID}/reorder",
            content=f'{{"positions": {{"{a}": NaN, "{b}": 1}}}}',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "graph_integrity"
        assert client.get("/api/graph").json()[ROOT_ID]["children"] == [a, b]

    def test_reveal(self, client):
        parent = create(client)
        child = create(client, parent, visible=False)
        response = client.post("/api/nodes/reveal", json={"ids": [parent]})
        assert response.json() == {"changed": True}
        assert client.get("/api/graph").json()[child]["visible"] is True

    def test_agenda(self, client):
        create(client, title="Later", dueDate="2024-02-01")
        overdue = create(client, title="Overdue", dueDate="2024-01-01")
        response = client.get("/api/agenda")
        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [overdue]
        assert response.json()[0]["overdue"] is True


class TestSyncRoutes:
    """Tests for sync status endpoints."""

    def test_status_and_flush_without_remote(self, client):
        assert client.get("/api/sync/status").json()["status"] == "memory"
        assert client.post("/api/sync/flush").status_code == 200

    def test_login_unavailable_without_oauth(self, client):
        response = client.get("/api/auth/google/login", follow_redirects=False)
        assert response.status_code == 503


class TestGoogleAuthorization:
    """Tests for the consent redirect and callback."""

    def test_login_callback_connects_remote_sync(self):
        def token_endpoint(request):
            return httpx.Response(200, json={"access_token": "a1", "refresh_token": "r1", "expires_in": 3600})

        with tempfile.TemporaryDirectory() as tmpdir:
            config = OAuthConfig(client_id="id.apps.googleusercontent.com", client_secret="secret")
            provider = GoogleOAuthTokenProvider(
                config,
                SecureTokenStore(Path(tmpdir), Fernet.generate_key().decode()),
                http_client=httpx.AsyncClient(transport=httpx.MockTransport(token_endpoint)),
            )
            store = FakeDocumentStore()
            engine = SyncEngine(store, provider, SyncSettings(debounce_ms=10_000))
            session = GraphSession(engine=engine)

            with TestClient(create_app(session, provider=provider)) as client:
                assert client.get("/api/sync/status").json()["status"] == "needs_auth"

                login = client.get("/api/auth/google/login", follow_redirects=False)
                assert login.status_code == 302
                state = parse_qs(urlparse(login.headers["location"]).query)["state"][0]

                bad = client.get("/api/auth/google/callback", params={"code": "c", "state": "forged"})
                assert bad.status_code == 400

                response = client.get("/api/auth/google/callback", params={"code": "c", "state": state})
                assert response.status_code == 200
                assert response.json()["status"] == "idle"
                assert response.json()["authenticated"] is True
                assert store.creates == 1

    def test_denied_consent(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = OAuthConfig(client_id="id.apps.googleusercontent.com", client_secret="secret")
            provider = GoogleOAuthTokenProvider(config, SecureTokenStore(Path(tmpdir), Fernet.generate_key().decode()))
            session = GraphSession(engine=SyncEngine(FakeDocumentStore(), provider))

            with TestClient(create_app(session, provider=provider)) as client:
                response = client.get("/api/auth/google/callback", params={"error": "access_denied"})
                assert response.status_code == 400
