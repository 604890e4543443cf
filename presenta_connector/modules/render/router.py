"""Render module routes."""

import re
from urllib.parse import quote

from fastapi import APIRouter, Depends, Header, Response
from pydantic import SecretStr

from presenta_connector.shared.logging import get_logger
from .builder import to_usv
from .schemas import (
    CredentialStatus,
    PresentaCredentials,
    RenderBatchRequest,
    RenderBatchResponse,
    RenderConfig,
    RenderResult,
)
from .service import RenderService

logger = get_logger(__name__)
router = APIRouter(prefix="/render", tags=["render"])

_UNSAFE_FILENAME_CHARS = re.compile(r'[^\x20-\x7e]|["\\]')


def content_disposition(filename: str) -> str:
    """
    Build an attachment header value that is safe for any filename.

    Non-ASCII names get an RFC 5987 ``filename*`` next to an ASCII fallback.
    """
    fallback = _UNSAFE_FILENAME_CHARS.sub("_", filename)
    value = f'attachment; filename="{fallback}"'
    if fallback != filename:
        value += f"; filename*=UTF-8''{quote(to_usv(filename), safe='')}"
    return value


def get_service() -> RenderService:
    """Dependency injection for service."""
    return RenderService()


def get_credentials(
    authorization: str | None = Header(default=None),
    service: RenderService = Depends(get_service),
) -> PresentaCredentials:
    """
    Resolve the Presenta token.

    A bearer token on the incoming request is forwarded to Presenta;
    otherwise the configured token is used.
    """
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
        if token:
            return PresentaCredentials(token=SecretStr(token))
    return service.resolve_credentials()


@router.get("/status", response_model=CredentialStatus)
def credential_status(
    service: RenderService = Depends(get_service),
    credentials: PresentaCredentials = Depends(get_credentials),
) -> CredentialStatus:
    """Check the token against Presenta's status endpoint."""
    return CredentialStatus(
        ok=service.test_credentials(credentials),
        base_url=service.settings.base_url,
    )


@router.post("", response_model=None)
def render(
    config: RenderConfig,
    service: RenderService = Depends(get_service),
    credentials: PresentaCredentials = Depends(get_credentials),
) -> Response | RenderResult:
    """
    Render a single item.

    Returns the artifact as binary content. With ``debug`` enabled the full
    result, diagnostics included, is returned as JSON with the artifact
    base64-encoded.
    """
    result = service.execute(config, credentials)

    if result.diagnostics is not None:
        return result

    artifact = result.artifact
    return Response(
        content=artifact.data,
        media_type=artifact.mime_type,
        headers={
            "Content-Disposition": content_disposition(artifact.filename),
            "Content-Length": str(artifact.size_bytes),
        },
    )


@router.post("/batch", response_model=RenderBatchResponse)
def render_batch(
    req: RenderBatchRequest,
    service: RenderService = Depends(get_service),
    credentials: PresentaCredentials = Depends(get_credentials),
) -> RenderBatchResponse:
    """Render items sequentially; see RenderService.execute_items for failure handling."""
    outputs = service.execute_items(req.items, credentials, continue_on_fail=req.continue_on_fail)
    failed = sum(1 for o in outputs if o.error is not None)
    logger.info(f"Batch finished: {len(outputs) - failed} succeeded, {failed} failed")
    return RenderBatchResponse(items=outputs, succeeded=len(outputs) - failed, failed=failed)
