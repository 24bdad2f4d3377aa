"""
Pytest configuration and fixtures for reconciliation tests.
Provides an in-memory search backend and shared test setup.
"""

import os
from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry

from fake_search import FakeSearchClient


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def set_test_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set default test environment variables if not already set."""
    defaults = {
        "ELASTICSEARCH_URL": "http://localhost:9200",
        "VAULT_ADDR": "http://localhost:8200",
        "VAULT_TOKEN": "dev-root-token",
    }

    for key, value in defaults.items():
        if key not in os.environ:
            monkeypatch.setenv(key, value)

    # Run settings come from each test, never from the outer environment
    for key in (
        "OPERATE_PARTITION_ID",
        "OPERATE_IMPORT_POSITION",
        "ELASTICSEARCH_USERNAME",
        "ELASTICSEARCH_PASSWORD",
        "ELASTICSEARCH_CLUSTER_NAME",
        "ELASTICSEARCH_CONNECT_TIMEOUT",
        "ELASTICSEARCH_SOCKET_TIMEOUT",
        "ELASTICSEARCH_SSL_CERTIFICATE_PATH",
        "ELASTICSEARCH_SSL_SELF_SIGNED",
        "ELASTICSEARCH_SSL_VERIFY_HOSTNAME",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fake_client() -> FakeSearchClient:
    """Empty in-memory search backend."""
    return FakeSearchClient()


@pytest.fixture
def registry() -> CollectorRegistry:
    """Isolated Prometheus registry."""
    return CollectorRegistry()
