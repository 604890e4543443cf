"""
Shared pytest fixtures.
"""

from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from presenta_connector.app import build_app
from presenta_connector.config import Settings, init_settings, reset_settings
from presenta_connector.modules.render.schemas import PresentaCredentials

BASE_URL = "https://presenta.test"
PDF_BYTES = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<< /Type /Catalog >>\nendobj\n"


def fake_response(
    status_code: int = 200,
    content: bytes = PDF_BYTES,
    headers: dict[str, str] | None = None,
) -> MagicMock:
    """Stand-in for requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    response.text = content.decode("utf-8", errors="replace")
    response.headers = headers or {"Content-Type": "application/pdf"}
    return response


@pytest.fixture
def settings() -> Iterator[Settings]:
    """Test settings, isolated from the environment's .env file."""
    test_settings = Settings(
        _env_file=None,
        base_url=BASE_URL,
        api_token="env-token",
        log_level="DEBUG",
    )
    init_settings(test_settings)
    yield test_settings
    reset_settings()


@pytest.fixture
def credentials() -> PresentaCredentials:
    return PresentaCredentials(token="abc")


@pytest.fixture
def mock_request() -> Iterator[MagicMock]:
    """Patch the outbound HTTP call; defaults to a 200 PDF response."""
    with patch("presenta_connector.modules.render.client.requests.request") as mocked:
        mocked.return_value = fake_response()
        yield mocked


@pytest.fixture
def client(settings: Settings) -> TestClient:
    """Test client for the FastAPI app."""
    return TestClient(build_app(settings))


@pytest.fixture
def make_response():
    """Factory fixture for fake upstream responses."""
    return fake_response
