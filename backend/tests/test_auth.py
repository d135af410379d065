"""Tests for the auth module: token handling, dev mode identity and bearer enforcement."""

import pytest
from fastapi.testclient import TestClient

from app.core.token_factory import create_token, decode_token
from app.main import create_app
from tests.conftest import as_user, document_payload


class TestTokenFactory:

    def test_create_and_decode(self):
        token = create_token("alice", "test-secret")
        payload = decode_token(token, "test-secret")
        assert payload is not None
        assert payload.sub == "alice"

    def test_wrong_secret_returns_none(self):
        token = create_token("alice", "correct-secret")
        assert decode_token(token, "wrong-secret") is None

    def test_expired_token_returns_none(self):
        token = create_token("alice", "secret", expires_hours=-1)
        assert decode_token(token, "secret") is None

    def test_malformed_token_returns_none(self):
        assert decode_token("not.a.token", "secret") is None
        assert decode_token("", "secret") is None

    def test_empty_subject_returns_none(self):
        assert decode_token(create_token("", "secret"), "secret") is None

    def test_only_hs256(self):
        with pytest.raises(ValueError):
            create_token("alice", "secret", algorithm="RS256")
        assert decode_token(create_token("alice", "secret"), "secret", algorithm="RS256") is None

    def test_foreign_issuer_returns_none(self):
        token = create_token("alice", "secret", issuer="someone-else")
        assert decode_token(token, "secret") is None
        assert decode_token(token, "secret", issuer="someone-else").sub == "alice"

    def test_tampered_claims_return_none(self):
        header, _, signature = create_token("alice", "secret").split(".")
        _, forged_claims, _ = create_token("mallory", "other").split(".")
        assert decode_token(f"{header}.{forged_claims}.{signature}", "secret") is None

    def test_payload_carries_issue_time(self):
        payload = decode_token(create_token("alice", "secret", expires_hours=2), "secret")
        assert payload.issued_at is not None
        assert (payload.exp - payload.issued_at).total_seconds() == 2 * 3600


class TestAuthDisabledMode:
    """When AUTH_ENABLED=false the caller is whoever X-User-Id names."""

    def test_header_selects_user(self, client):
        resp = client.post("/api/documents", json=document_payload("Mine"), headers=as_user("carol"))
        assert resp.status_code == 201
        assert resp.json()["owner_id"] == "carol"

    def test_falls_back_to_dev_user(self, client, settings):
        resp = client.post("/api/documents", json=document_payload("Dev"))
        assert resp.json()["owner_id"] == settings.dev_user_id

    def test_overlong_user_id_rejected(self, client):
        resp = client.get("/api/documents", headers=as_user("x" * 51))
        assert resp.status_code == 401
        assert resp.json()["error"] == "unauthorized"


class TestAuthEnabledMode:

    @pytest.fixture()
    def secure_client(self, engine, settings):
        settings.auth_enabled = True
        settings.jwt_secret_key = "test-secret"
        app = create_app(settings=settings, engine=engine)
        with TestClient(app) as c:
            yield c

    def test_missing_token_returns_401(self, secure_client):
        resp = secure_client.get("/api/documents")
        assert resp.status_code == 401
        assert resp.json()["error"] == "unauthorized"

    def test_header_is_ignored_without_token(self, secure_client):
        assert secure_client.get("/api/documents", headers=as_user("alice")).status_code == 401

    def test_bad_token_returns_401(self, secure_client):
        token = create_token("alice", "another-secret")
        resp = secure_client.get("/api/documents", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_valid_token_identifies_user(self, secure_client):
        headers = {"Authorization": f"Bearer {create_token('alice', 'test-secret')}"}
        resp = secure_client.post("/api/documents", json=document_payload("Signed"), headers=headers)
        assert resp.status_code == 201
        assert resp.json()["owner_id"] == "alice"

    def test_health_stays_open(self, secure_client):
        assert secure_client.get("/health").status_code == 200
