"""
Tests for login/register throttling.
"""

import pytest
from fastapi.testclient import TestClient

from taskhub.core.rate_limit import RateLimiter
from taskhub.main import create_app
from tests.conftest import make_settings, register


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.unit
def test_limiter_allows_up_to_max_then_rejects():
    clock = FakeClock()
    limiter = RateLimiter(max_attempts=3, window_seconds=60, clock=clock)

    assert [limiter.hit("k") for _ in range(3)] == [None, None, None]
    retry_after = limiter.hit("k")
    assert retry_after == pytest.approx(60)

    # Other keys are counted separately
    assert limiter.hit("other") is None


@pytest.mark.unit
def test_limiter_window_slides():
    clock = FakeClock()
    limiter = RateLimiter(max_attempts=2, window_seconds=60, clock=clock)
    limiter.hit("k")
    clock.now += 30
    limiter.hit("k")
    assert limiter.hit("k") is not None

    clock.now += 31
    assert limiter.hit("k") is None
    assert limiter.hit("k") is not None


@pytest.mark.unit
def test_limiter_reset():
    limiter = RateLimiter(max_attempts=1, window_seconds=60)
    limiter.hit("k")
    assert limiter.hit("k") is not None
    limiter.reset("k")
    assert limiter.hit("k") is None


@pytest.mark.unit
def test_limiter_forgets_expired_keys():
    clock = FakeClock()
    limiter = RateLimiter(max_attempts=5, window_seconds=60, clock=clock)
    limiter.hit("a")
    clock.now += 30
    limiter.hit("b")
    assert len(limiter) == 2

    clock.now += 31
    limiter.hit("c")
    # "a" fell out of the window, "b" is still counted
    assert len(limiter) == 2
    assert limiter.hit("b") is None

    clock.now += 120
    limiter.hit("d")
    assert len(limiter) == 1


@pytest.mark.api
def test_sixth_login_attempt_is_rate_limited(database_url, session_factory):
    settings = make_settings(database_url, AUTH_RATE_LIMIT_MAX_ATTEMPTS=5, AUTH_RATE_LIMIT_WINDOW_SECONDS=900)
    app = create_app(settings=settings, session_factory=session_factory)

    with TestClient(app) as client:
        register(client, "Alice", "alice@example.com", password="correct-horse")

        for _ in range(5):
            response = client.post(
                "/api/auth/login",
                json={"email": "alice@example.com", "password": "wrong-password"},
            )
            assert response.status_code == 401
            assert response.json()["error"]["code"] == "InvalidCredentials"

        # Correct credentials do not help once the window is exhausted
        response = client.post(
            "/api/auth/login",
            json={"email": "alice@example.com", "password": "correct-horse"},
        )
        assert response.status_code == 429
        assert response.json()["error"]["code"] == "RateLimited"
        assert int(response.headers["Retry-After"]) > 0
