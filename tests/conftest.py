"""Shared pytest fixtures for the streamlog test suite."""

from __future__ import annotations

import pytest

from streamlog.config import Config


class FakeClock:
    """Nanosecond clock that advances by ``step_ms`` on every read."""

    def __init__(self, start_ms: int = 1_736_942_400_000, step_ms: int = 1):
        self.now_ns = start_ms * 1_000_000
        self.step_ns = step_ms * 1_000_000

    def __call__(self) -> int:
        value = self.now_ns
        self.now_ns += self.step_ns
        return value


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_config():
    """Factory for Config with test-friendly defaults."""

    def _make(**overrides) -> Config:
        defaults = dict(
            app_name="demo",
            buffer_size=1024,
            log_size=10 * 1024 * 1024,
            log_age=0,
            log_count=7,
        )
        defaults.update(overrides)
        return Config(**defaults)

    return _make
