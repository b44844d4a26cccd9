"""Pytest configuration and shared fixtures"""
import pytest

from metrics.registry import MetricsRegistry

from helpers import FakeAdaptor


@pytest.fixture
def metrics():
    """A fresh registry per test so counters start at zero"""
    return MetricsRegistry()


@pytest.fixture(autouse=True)
def reset_fake_adaptors():
    FakeAdaptor.created = []
    yield
    FakeAdaptor.created = []
