"""
Tests for settings parsing and the API rate limiter.
"""

import pytest

from yamlcheck.config import Settings
from yamlcheck.services.rate_limiter import FixedWindowRateLimiter


class TestSettings:
    """Environment-driven configuration."""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.TOOL_TIMEOUT_SECONDS == 10.0
        assert settings.MAX_BYTES == 2_097_152
        assert settings.MAX_LINES == 15_000
        assert settings.STRICT_TOOLS is False

    @pytest.mark.parametrize("raw, expected", [
        ("3", 3),
        ("abc", None),
        ("0", None),
        ("-2", None),
        ("", None),
    ])
    def test_concurrency_is_lenient(self, monkeypatch, raw, expected):
        monkeypatch.setenv("YAML_CONCURRENCY", raw)
        assert Settings(_env_file=None).YAML_CONCURRENCY == expected

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SPECTRAL_RULESET", "/etc/spectral.yaml")
        monkeypatch.setenv("STRICT_TOOLS", "true")
        settings = Settings(_env_file=None)
        assert settings.SPECTRAL_RULESET == "/etc/spectral.yaml"
        assert settings.STRICT_TOOLS is True


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestRateLimiter:
    """Fixed window per key."""

    def test_allows_up_to_limit(self):
        limiter = FixedWindowRateLimiter(max_requests=2, window_seconds=3600)
        assert limiter.hit("1.2.3.4").allowed
        assert limiter.hit("1.2.3.4").allowed
        assert not limiter.hit("1.2.3.4").allowed

    def test_keys_are_independent(self):
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=3600)
        assert limiter.hit("a").allowed
        assert limiter.hit("b").allowed
        assert not limiter.hit("a").allowed

    def test_remaining_and_reset_count_down(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(max_requests=3, window_seconds=60, clock=clock)

        first = limiter.hit("k")
        clock.now += 20.5
        second = limiter.hit("k")

        assert (first.remaining, first.reset_seconds) == (2, 60)
        assert (second.remaining, second.reset_seconds) == (1, 40)

    def test_window_resets_all_at_once(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.hit("k")
        clock.now += 59
        assert not limiter.hit("k").allowed

        clock.now += 1
        status = limiter.hit("k")

        assert status.allowed
        assert status.remaining == 0
        assert status.reset_seconds == 60

    def test_expired_windows_are_pruned(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(max_requests=5, window_seconds=10, clock=clock)
        limiter.hit("old")
        clock.now += 11
        limiter.hit("new")

        assert list(limiter._windows) == ["new"]

    def test_headers(self):
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())

        ok = limiter.hit("k").headers()
        limited = limiter.hit("k").headers()

        assert ok == {
            "RateLimit-Policy": "1;w=60",
            "RateLimit-Limit": "1",
            "RateLimit-Remaining": "0",
            "RateLimit-Reset": "60",
        }
        assert limited["Retry-After"] == "60"
        assert limited["RateLimit-Remaining"] == "0"
