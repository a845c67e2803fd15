"""
Tests for identity resolution on the HTTP surface.

These tests verify that:
1. A valid bearer token or session cookie identifies the caller
2. No credentials means guest, which read endpoints accept
3. Expired, forged or malformed tokens are rejected with 401 and a trace_id
"""

import jwt
import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

import app.main as m
from app.auth import deps
from app.auth.deps import SESSION_COOKIE_NAME
from app.auth.security import ALGORITHM, create_access_token
from app.config import JWT_SECRET


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(m, "wait_for_db", lambda *args, **kwargs: None)
    monkeypatch.setattr(m, "run_migrations", lambda *args, **kwargs: None)
    return TestClient(m.app)


def test_bearer_token_identifies_caller(client, make_user):
    ana = make_user("Ana")
    token = create_access_token(ana)
    r = client.put("/me/preferences/categories", json={"categories": ["PC"]}, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200


def test_session_cookie_identifies_caller(client, make_user):
    ana = make_user("Ana")
    client.cookies.set(SESSION_COOKIE_NAME, create_access_token(ana))
    r = client.put("/me/preferences/categories", json={"categories": ["PC"]})
    assert r.status_code == 200


def test_expired_token_is_rejected(client, make_user):
    ana = make_user("Ana")
    token = create_access_token(ana, ttl_minutes=-5)
    r = client.get("/candidates", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert "trace_id" in r.json()["detail"]


def test_forged_token_is_rejected(client, make_user):
    ana = make_user("Ana")
    forged = jwt.encode({"sub": ana}, "some-other-secret-of-sufficient-length", algorithm=ALGORITHM)
    r = client.get("/conversations", headers={"Authorization": f"Bearer {forged}"})
    assert r.status_code == 401


def test_malformed_header_is_rejected(client):
    r = client.get("/candidates", headers={"Authorization": "Token abc"})
    assert r.status_code == 401
    assert r.json()["detail"]["message"] == "Invalid Authorization header"


def test_token_without_subject_is_rejected(client):
    token = create_access_token("placeholder")
    claims = jwt.decode(token, options={"verify_signature": False})
    claims.pop("sub")
    r = client.get("/candidates", headers={"Authorization": f"Bearer {jwt.encode(claims, JWT_SECRET, algorithm=ALGORITHM)}"})
    assert r.status_code == 401


def test_dev_mode_exposes_reason(client, monkeypatch, make_user):
    monkeypatch.setattr(deps, "DEV_MODE", True)
    token = create_access_token(make_user("Ana"), ttl_minutes=-5)
    r = client.get("/candidates", headers={"Authorization": f"Bearer {token}"})
    detail = r.json()["detail"]
    assert r.status_code == 401
    assert detail["reason"] == "token_expired"
    assert detail["trace_id"]


def test_missing_token_on_write_is_rejected(client):
    r = client.post("/passes", json={"target_user_id": "someone"})
    assert r.status_code == 401
    assert r.json()["detail"]["message"] == "Authentication required"
