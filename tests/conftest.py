from __future__ import annotations

import pytest

from fakes import DEFAULT_TOML, FakeEngine, FakeSink, FakeSurface


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def default_toml() -> str:
    return DEFAULT_TOML
