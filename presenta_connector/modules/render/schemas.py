"""
Render module Pydantic schemas.

All models are frozen: a result is built once per input item and handed
downstream without further mutation.
"""

import base64
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_serializer, model_validator


# =============================================================================
# TYPES
# =============================================================================

Endpoint = Literal["render", "cached"]
HttpMethod = Literal["POST", "GET"]

DEFAULT_FILENAME = "document"


# =============================================================================
# CONFIGURATION
# =============================================================================

class InjectionPolicy(BaseModel):
    """
    Which control fields are injected into the payload.

    The default injects format, filename, pure-PDF and cache-buster and
    leaves debug out. With ``omit_default_filename`` a filename equal to
    the "document" default is treated as unset and not injected.
    """
    model_config = ConfigDict(frozen=True)

    export_format: bool = True
    filename: bool = True
    export_pure_pdf: bool = True
    cache_buster: bool = True
    debug: bool = False
    omit_default_filename: bool = False


class RenderConfig(BaseModel):
    """Per-item render configuration."""
    model_config = ConfigDict(frozen=True)

    endpoint: Endpoint = Field(default="render", description="Presenta endpoint: render or cached")
    template_id: str = Field(default="", description="Presenta template ID")
    payload: Any = Field(default="{}", description="JSON object or JSON-encoded string")
    export_format: str = Field(default="pdf", description="pdf, png, jpeg or webp")
    filename: str = Field(default=DEFAULT_FILENAME, description="Name of the returned document")
    export_pure_pdf: bool = Field(default=False, description="Preserve vector elements in PDF")
    cache_buster: bool = Field(default=True, description="Disable server cache on template update")
    debug: bool = Field(default=False, description="Attach request/response diagnostics")
    custom_endpoint_url: str | None = Field(
        default=None,
        description="Full URL override; endpoint and template_id are ignored when set",
    )
    injection: InjectionPolicy = Field(default_factory=InjectionPolicy)

    @property
    def has_custom_endpoint(self) -> bool:
        return bool(self.custom_endpoint_url and self.custom_endpoint_url.strip())

    @model_validator(mode="after")
    def _require_template_id(self) -> "RenderConfig":
        if not self.template_id.strip() and not self.has_custom_endpoint:
            raise ValueError("template_id is required unless custom_endpoint_url is set")
        return self


class PresentaCredentials(BaseModel):
    """Presenta API credential: a single bearer token."""
    model_config = ConfigDict(frozen=True)

    token: SecretStr | None = None


# =============================================================================
# REQUEST PLAN
# =============================================================================

class RequestPlan(BaseModel):
    """Fully resolved outbound HTTP request."""
    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    url: str
    headers: dict[str, str]
    body: bytes | None = None


# =============================================================================
# RESULTS
# =============================================================================

class BinaryArtifact(BaseModel):
    """Rendered file returned by Presenta."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str
    filename: str
    file_extension: str
    size_bytes: int

    @field_serializer("data", when_used="json")
    def _data_as_base64(self, data: bytes) -> str:
        return base64.b64encode(data).decode("ascii")


class RequestSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    url: str
    headers: dict[str, str]
    body: str | None = None


class ResponseSnapshot(BaseModel):
    """Response body mirrored for inspection: full base64 plus a short head."""
    model_config = ConfigDict(frozen=True)

    status_code: int
    size_bytes: int
    body_base64: str
    head_base64: str
    head_utf8: str


class RenderDiagnostics(BaseModel):
    """Debug record attached to a result when ``debug`` is enabled."""
    model_config = ConfigDict(frozen=True)

    payload: dict[str, Any]
    request: RequestSnapshot
    response: ResponseSnapshot
    curl: str | None = None


class RenderResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    artifact: BinaryArtifact
    diagnostics: RenderDiagnostics | None = None


class ItemError(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    status_code: int | None = None


class ItemOutput(BaseModel):
    """Outcome for one batch item: a result or, under continue-on-fail, an error."""
    model_config = ConfigDict(frozen=True)

    index: int
    result: RenderResult | None = None
    error: ItemError | None = None


# =============================================================================
# API REQUESTS
# =============================================================================

class RenderBatchRequest(BaseModel):
    """Batch of items processed sequentially in input order."""
    items: list[dict[str, Any]] = Field(..., description="RenderConfig objects")
    continue_on_fail: bool | None = Field(
        default=None,
        description="Report failing items as errors instead of aborting; defaults to settings",
    )


class RenderBatchResponse(BaseModel):
    items: list[ItemOutput]
    succeeded: int
    failed: int


class CredentialStatus(BaseModel):
    ok: bool
    base_url: str
