"""
Render service - builds and sends Presenta requests, materializes artifacts.
"""

import base64
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from presenta_connector.config import Settings, get_settings
from presenta_connector.shared.errors import PresentaError, UpstreamRequestFailedError
from presenta_connector.shared.logging import get_logger, set_item_index

from .builder import build_request_plan, extension_for, redact_headers, resolve_mime_type, to_curl
from .client import PresentaClient, PresentaResponse
from .payload import merge_payload, normalize_payload
from .schemas import (
    DEFAULT_FILENAME,
    BinaryArtifact,
    ItemError,
    ItemOutput,
    PresentaCredentials,
    RenderConfig,
    RenderDiagnostics,
    RenderResult,
    RequestPlan,
    RequestSnapshot,
    ResponseSnapshot,
)

logger = get_logger(__name__)

# Size of the response head mirrored into diagnostics for quick sniffing
SNIFF_BYTES = 100


# =============================================================================
# SERVICE
# =============================================================================

class RenderService:
    """Service for rendering Presenta templates into binary artifacts."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: PresentaClient | None = None,
    ):
        self.settings = settings or get_settings()
        self.client = client or PresentaClient(
            base_url=self.settings.base_url,
            timeout=self.settings.request_timeout,
        )

    def resolve_credentials(self, credentials: PresentaCredentials | None = None) -> PresentaCredentials:
        """Explicit credentials win; otherwise fall back to the configured token."""
        if credentials is not None:
            return credentials
        return PresentaCredentials(token=self.settings.api_token)

    def build_plan(
        self,
        config: RenderConfig,
        credentials: PresentaCredentials,
    ) -> tuple[dict[str, Any], RequestPlan]:
        """
        Validate input and build the outbound request without sending it.

        Returns:
            (merged payload, request plan)
        """
        payload = merge_payload(normalize_payload(config.payload), config)
        token = credentials.token.get_secret_value() if credentials.token else None
        plan = build_request_plan(config, payload, token, self.settings.base_url)
        return payload, plan

    def execute(
        self,
        config: RenderConfig,
        credentials: PresentaCredentials,
    ) -> RenderResult:
        """
        Render one item.

        All validation happens before the network call; a failure leaves
        nothing behind.

        Raises:
            InvalidPayloadFormatError: payload string is not JSON
            InvalidPayloadShapeError: payload is not a JSON object
            MissingCredentialError: no usable token
            UpstreamRequestFailedError: Presenta failed or was unreachable
        """
        payload, plan = self.build_plan(config, credentials)
        response = self.client.send(plan)

        mime_type = resolve_mime_type(config.export_format)
        extension = extension_for(mime_type)
        artifact = BinaryArtifact(
            data=response.content,
            mime_type=mime_type,
            filename=self._artifact_filename(config.filename, extension),
            file_extension=extension,
            size_bytes=len(response.content),
        )

        diagnostics = self._diagnostics(payload, plan, response) if config.debug else None
        return RenderResult(artifact=artifact, diagnostics=diagnostics)

    def execute_items(
        self,
        configs: Iterable[RenderConfig | dict[str, Any]],
        credentials: PresentaCredentials,
        continue_on_fail: bool | None = None,
    ) -> list[ItemOutput]:
        """
        Render items one at a time, in input order.

        With continue_on_fail a failing item yields an error output and
        processing moves on; otherwise the first failure is raised.
        Raw dicts are validated per item so a bad config only fails its own item.
        """
        if continue_on_fail is None:
            continue_on_fail = self.settings.continue_on_fail

        outputs: list[ItemOutput] = []
        try:
            for index, raw in enumerate(configs):
                set_item_index(index)
                try:
                    config = raw if isinstance(raw, RenderConfig) else RenderConfig.model_validate(raw)
                    result = self.execute(config, credentials)
                except (PresentaError, ValidationError) as e:
                    if not continue_on_fail:
                        raise
                    logger.warning(f"Item {index} failed: {e}")
                    outputs.append(ItemOutput(index=index, error=self._item_error(e)))
                    continue
                outputs.append(ItemOutput(index=index, result=result))
        finally:
            set_item_index(None)

        return outputs

    def test_credentials(self, credentials: PresentaCredentials) -> bool:
        token = credentials.token.get_secret_value() if credentials.token else ""
        if not token.strip():
            return False
        return self.client.test_connection(token)

    # -------------------------------------------------------------------------
    # helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _artifact_filename(filename: str, extension: str) -> str:
        if not filename or filename == DEFAULT_FILENAME:
            return f"{DEFAULT_FILENAME}.{extension}"
        return filename

    def _diagnostics(
        self,
        payload: dict[str, Any],
        plan: RequestPlan,
        response: PresentaResponse,
    ) -> RenderDiagnostics:
        redact = self.settings.debug_redact_credentials
        head = response.content[:SNIFF_BYTES]

        return RenderDiagnostics(
            payload=payload,
            request=RequestSnapshot(
                method=plan.method,
                url=plan.url,
                headers=redact_headers(plan.headers) if redact else dict(plan.headers),
                body=plan.body.decode("utf-8") if plan.body is not None else None,
            ),
            response=ResponseSnapshot(
                status_code=response.status_code,
                size_bytes=len(response.content),
                body_base64=base64.b64encode(response.content).decode("ascii"),
                head_base64=base64.b64encode(head).decode("ascii"),
                head_utf8=head.decode("utf-8", errors="replace"),
            ),
            curl=to_curl(plan, redact=redact) if self.settings.debug_include_curl else None,
        )

    @staticmethod
    def _item_error(exc: Exception) -> ItemError:
        if isinstance(exc, UpstreamRequestFailedError):
            return ItemError(code=exc.code, message=exc.message, status_code=exc.status_code)
        if isinstance(exc, PresentaError):
            return ItemError(code=exc.code, message=exc.message)
        return ItemError(code="INVALID_CONFIG", message=str(exc))
