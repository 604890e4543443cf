"""
Request construction: content negotiation, URL, headers and body.

Everything here is pure: the same config, payload and token always produce
the same RequestPlan.
"""

import json
import math
import shlex
from decimal import Decimal
from typing import Any
from urllib.parse import quote, urlencode

from presenta_connector.shared.errors import InvalidPayloadFormatError, MissingCredentialError

from .schemas import RenderConfig, RequestPlan

# Accept header and artifact MIME type per export format.
# The Accept header is format specific; the remote API itself keys off the
# f2a_exportFileFormat payload field.
FORMAT_MIME_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "png": "image/png",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
}
FALLBACK_MIME_TYPE = "application/pdf"

MIME_EXTENSIONS: dict[str, str] = {mime: fmt for fmt, mime in FORMAT_MIME_TYPES.items()}

REDACTED = "***"


# =============================================================================
# CONTENT NEGOTIATION
# =============================================================================

def resolve_mime_type(export_format: str | None) -> str:
    """Map an export format to its MIME type; unknown or unset falls back to PDF."""
    if not export_format:
        return FALLBACK_MIME_TYPE
    return FORMAT_MIME_TYPES.get(export_format, FALLBACK_MIME_TYPE)


def extension_for(mime_type: str) -> str:
    return MIME_EXTENSIONS.get(mime_type, "pdf")


# =============================================================================
# URL
# =============================================================================

def to_usv(text: str) -> str:
    """Replace lone surrogates with U+FFFD so the text can be UTF-8 encoded."""
    return text.encode("utf-16", "surrogatepass").decode("utf-16", "replace")


def js_number(value: float) -> str:
    """Format a float like JavaScript's Number#toString."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    _, digit_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    k = len(digits)
    n = exponent + k
    prefix = "-" if value < 0 else ""

    if k <= n <= 21:
        return prefix + digits + "0" * (n - k)
    if 0 < n <= 21:
        return prefix + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return prefix + "0." + "0" * -n + digits

    e = n - 1
    mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
    return f"{prefix}{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"


def js_string(value: Any) -> str:
    """
    Stringify a JSON value the way JavaScript's String() does.

    Used for query parameters. Nested objects become "[object Object]" and
    arrays are comma-joined, so this is a lossy encoding.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return js_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ",".join("" if v is None else js_string(v) for v in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def build_query(payload: dict[str, Any]) -> str:
    """Flatten payload entries into a form-encoded query string, in insertion order."""
    return urlencode([(to_usv(key), to_usv(js_string(value))) for key, value in payload.items()])


def build_url(config: RenderConfig, payload: dict[str, Any], base_url: str) -> str:
    """
    Resolve the request URL.

    A custom endpoint URL is used verbatim. Otherwise the URL is
    ``<base_url>/api/<endpoint>/<template_id>``, with the payload appended
    as a query string for the cached endpoint.
    """
    if config.has_custom_endpoint:
        return config.custom_endpoint_url.strip()

    url = f"{base_url.rstrip('/')}/api/{config.endpoint}/{quote(config.template_id.strip(), safe='')}"

    if config.endpoint == "cached":
        query = build_query(payload)
        if query:
            url = f"{url}?{query}"

    return url


# =============================================================================
# HEADERS & BODY
# =============================================================================

def serialize_body(payload: dict[str, Any]) -> bytes | None:
    """
    Compact JSON body, or None when there is nothing to send.

    Non-ASCII text is \\u-escaped, so any string survives encoding.

    Raises:
        InvalidPayloadFormatError: payload holds NaN or Infinity
    """
    if not payload:
        return None
    try:
        text = json.dumps(payload, separators=(",", ":"), allow_nan=False)
    except ValueError as e:
        raise InvalidPayloadFormatError(str(e)) from e
    return text.encode("ascii")


def build_headers(token: str, accept: str, has_body: bool) -> dict[str, str]:
    headers = {
        "Authorization": f"Bearer {token}",
        "Accept": accept,
    }
    if has_body:
        headers["Content-Type"] = "application/json"
    return headers


def build_request_plan(
    config: RenderConfig,
    payload: dict[str, Any],
    token: str | None,
    base_url: str,
) -> RequestPlan:
    """
    Build the outbound request for a merged payload.

    Render is a POST with the payload as JSON body; cached is a GET with the
    payload in the query string and no body.

    Raises:
        MissingCredentialError: token is missing or blank
    """
    if not token or not token.strip():
        raise MissingCredentialError()

    accept = resolve_mime_type(config.export_format)
    body = serialize_body(payload) if config.endpoint == "render" else None

    return RequestPlan(
        method="POST" if config.endpoint == "render" else "GET",
        url=build_url(config, payload, base_url),
        headers=build_headers(token, accept, has_body=body is not None),
        body=body,
    )


# =============================================================================
# DIAGNOSTICS HELPERS
# =============================================================================

def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Copy of headers with the bearer token masked."""
    redacted = dict(headers)
    if "Authorization" in redacted:
        redacted["Authorization"] = f"Bearer {REDACTED}"
    return redacted


def to_curl(plan: RequestPlan, redact: bool = True) -> str:
    """Reconstruct the request as a shell command for manual reproduction."""
    headers = redact_headers(plan.headers) if redact else plan.headers
    parts = ["curl", "-X", plan.method, shlex.quote(plan.url)]
    for name, value in headers.items():
        parts += ["-H", shlex.quote(f"{name}: {value}")]
    if plan.body is not None:
        parts += ["--data-raw", shlex.quote(plan.body.decode("utf-8"))]
    parts += ["--output", "-"]
    return " ".join(parts)
