import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

import app.main as m
from app.auth.security import create_access_token
from app.routes import match as match_routes
from app.services.rate_limit import SlidingWindowLimiter, limiter


def test_window_blocks_then_recovers():
    rl = SlidingWindowLimiter()
    assert rl.check("k", limit=2, window_seconds=10, now=100.0).allowed
    assert rl.check("k", limit=2, window_seconds=10, now=101.0).allowed

    blocked = rl.check("k", limit=2, window_seconds=10, now=102.0)
    assert blocked.allowed is False
    assert blocked.retry_after_seconds == 8

    assert rl.check("k", limit=2, window_seconds=10, now=110.5).allowed


def test_keys_are_independent():
    rl = SlidingWindowLimiter()
    assert rl.check("a", limit=1, window_seconds=60, now=0.0).allowed
    assert rl.check("b", limit=1, window_seconds=60, now=0.0).allowed
    assert not rl.check("a", limit=1, window_seconds=60, now=1.0).allowed


def test_like_endpoint_returns_429_with_retry_after(monkeypatch, make_user):
    ana = make_user("Ana")
    ben = make_user("Ben")
    monkeypatch.setattr(m, "wait_for_db", lambda *args, **kwargs: None)
    monkeypatch.setattr(m, "run_migrations", lambda *args, **kwargs: None)
    client = TestClient(m.app)
    headers = {"Authorization": f"Bearer {create_access_token(ana)}"}

    for _ in range(match_routes.RL_LIKE_LIMIT):
        assert client.post("/likes", json={"target_user_id": ben}, headers=headers).status_code == 200

    r = client.post("/likes", json={"target_user_id": ben}, headers=headers)
    assert r.status_code == 429
    assert int(r.headers["Retry-After"]) >= 1

    limiter.reset()
    assert client.post("/likes", json={"target_user_id": ben}, headers=headers).status_code == 200
