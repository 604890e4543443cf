"""
Presenta API client.

Sends a RequestPlan and returns the raw response bytes. Rendered artifacts
are binary, so the body is never decoded as text on success.
"""

from dataclasses import dataclass

import requests

from presenta_connector.shared.errors import UpstreamRequestFailedError
from presenta_connector.shared.logging import get_logger

from .schemas import RequestPlan

logger = get_logger(__name__)

# Upstream error bodies are kept for the error record, up to this length
MAX_ERROR_BODY_CHARS = 2000


@dataclass(frozen=True)
class PresentaResponse:
    """Raw upstream response."""
    status_code: int
    content: bytes
    headers: dict[str, str]


class PresentaClient:
    """
    Thin HTTP client for the Presenta API.

    Usage:
        client = PresentaClient(base_url="https://www.presenta.cc")
        response = client.send(plan)
        ok = client.test_connection(token)
    """

    def __init__(
        self,
        base_url: str = "https://www.presenta.cc",
        timeout: float | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def send(self, plan: RequestPlan) -> PresentaResponse:
        """
        Perform the request described by plan.

        Raises:
            UpstreamRequestFailedError: transport failure or non-2xx status
        """
        logger.info(f"Presenta request: {plan.method} {plan.url.split('?', 1)[0]}")
        try:
            response = requests.request(
                method=plan.method,
                url=plan.url,
                headers=plan.headers,
                data=plan.body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Presenta request failed: {e}")
            raise UpstreamRequestFailedError(f"Request to Presenta failed: {e}") from e

        if not 200 <= response.status_code < 300:
            body = response.text[:MAX_ERROR_BODY_CHARS]
            logger.warning(f"Presenta answered HTTP {response.status_code}")
            raise UpstreamRequestFailedError(
                f"Presenta API returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        content = response.content
        logger.info(f"Presenta response: HTTP {response.status_code}, {len(content)} bytes")
        return PresentaResponse(
            status_code=response.status_code,
            content=content,
            headers=dict(response.headers),
        )

    def test_connection(self, token: str) -> bool:
        """Check that the token is accepted by the Presenta status endpoint."""
        try:
            response = requests.get(
                f"{self.base_url}/api/status",
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Presenta status check failed: {e}")
            return False
        return 200 <= response.status_code < 300
