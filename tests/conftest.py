"""
genflow Test Configuration

Shared pytest fixtures and configuration for all test types.
"""

from pathlib import Path
from typing import Generator

import pytest

from genflow.core.config import Settings, reset_settings
from genflow.studio import GenerationStudio, shutdown_studio
from genflow.transport.base import MockTransport


# Configure pytest collection
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests (full flows against a scripted backend)")


@pytest.fixture(autouse=True)
def _reset_singletons() -> Generator[None, None, None]:
    """Keep the settings and studio singletons from leaking between tests."""
    reset_settings()
    shutdown_studio()
    yield
    reset_settings()
    shutdown_studio()


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with near-zero delays so retry and polling tests run quickly."""
    return Settings(
        retry={"max_attempts": 5, "base_delay": 0.001, "max_jitter": 0.0},
        poller={"interval": 0.001, "start_attempts": 5, "start_base_delay": 0.001},
        batch={"inter_call_delay": 0.0, "thumbnail_count": 5},
        guards={"enabled": True, "max_requests": 1000, "window_seconds": 60.0},
    )


@pytest.fixture
def mock_transport() -> MockTransport:
    """Provide a fresh scripted transport."""
    return MockTransport(download_suffix="&key=test-key")


@pytest.fixture
def studio(mock_transport: MockTransport, fast_settings: Settings) -> GenerationStudio:
    """Provide a studio wired to the mock transport."""
    return GenerationStudio(mock_transport, fast_settings)
