import pytest

from corpintel.services import rate_limiter
from corpintel.services.rate_limiter import client_ip, rate_limit, reset_rate_limits


@pytest.fixture
def clock(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(rate_limiter.time, "monotonic", lambda: now[0])
    monkeypatch.setattr(rate_limiter, "_last_cleanup", now[0])
    reset_rate_limits()
    yield now
    reset_rate_limits()


class TestRateLimit:
    """Fixed window per key"""

    def test_allows_up_to_limit(self, clock):
        results = [rate_limit("analyze:1.2.3.4", 3, 60) for _ in range(4)]
        assert [r.allowed for r in results] == [True, True, True, False]
        assert [r.remaining for r in results] == [2, 1, 0, 0]

    def test_keys_are_independent(self, clock):
        for _ in range(3):
            rate_limit("a", 3, 60)
        assert not rate_limit("a", 3, 60).allowed
        assert rate_limit("b", 3, 60).allowed

    def test_window_resets(self, clock):
        for _ in range(4):
            rate_limit("a", 3, 60)
        clock[0] += 61
        result = rate_limit("a", 3, 60)
        assert result.allowed
        assert result.remaining == 2

    def test_expired_windows_are_swept(self, clock):
        rate_limit("old", 3, 10)
        clock[0] += rate_limiter.CLEANUP_INTERVAL + 11
        rate_limit("new", 3, 10)
        assert "old" not in rate_limiter._WINDOWS
        assert "new" in rate_limiter._WINDOWS


class TestClientIp:

    def test_forwarded_for_first_hop(self):
        assert client_ip({"x-forwarded-for": "9.9.9.9, 10.0.0.1"}) == "9.9.9.9"

    def test_real_ip_then_fallback(self):
        assert client_ip({"x-real-ip": "8.8.8.8"}) == "8.8.8.8"
        assert client_ip({}, "127.0.0.1") == "127.0.0.1"
        assert client_ip({}) == "unknown"
