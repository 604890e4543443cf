"""
Payload normalization and control-field injection.
"""

import json
from typing import Any

from presenta_connector.shared.errors import InvalidPayloadFormatError, InvalidPayloadShapeError

from .schemas import DEFAULT_FILENAME, RenderConfig

# Control fields understood by the Presenta API
FIELD_EXPORT_FORMAT = "f2a_exportFileFormat"
FIELD_FILENAME = "f2a_filename"
FIELD_EXPORT_PURE_PDF = "f2a_exportPurePDF"
FIELD_CACHE_BUSTER = "f2a_cacheBuster"
FIELD_DEBUG = "f2a_debug"


def json_type_name(value: Any) -> str:
    """Name a Python value by its JSON type, for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def normalize_payload(raw: Any) -> dict[str, Any]:
    """
    Turn the configured payload into a JSON object.

    Strings are parsed as JSON first. The result must be an object;
    arrays, scalars and null are rejected.

    Raises:
        InvalidPayloadFormatError: raw is a string that is not valid JSON
        InvalidPayloadShapeError: the (parsed) value is not an object
    """
    value = raw
    if isinstance(raw, str):
        try:
            value = json.loads(raw, parse_constant=_reject_constant)
        except ValueError as e:
            raise InvalidPayloadFormatError(str(e)) from e

    if not isinstance(value, dict):
        raise InvalidPayloadShapeError(json_type_name(value))

    return dict(value)


def control_fields(config: RenderConfig) -> dict[str, Any]:
    """Control fields to inject, in injection order, filtered by the config's policy."""
    policy = config.injection
    fields: dict[str, Any] = {}

    if policy.export_format:
        fields[FIELD_EXPORT_FORMAT] = config.export_format

    if policy.filename:
        is_unset = not config.filename or config.filename == DEFAULT_FILENAME
        if not (policy.omit_default_filename and is_unset):
            fields[FIELD_FILENAME] = config.filename

    if policy.export_pure_pdf:
        fields[FIELD_EXPORT_PURE_PDF] = config.export_pure_pdf

    if policy.cache_buster:
        fields[FIELD_CACHE_BUSTER] = config.cache_buster

    if policy.debug:
        fields[FIELD_DEBUG] = config.debug

    return fields


def merge_payload(payload: dict[str, Any], config: RenderConfig) -> dict[str, Any]:
    """
    Merge control fields into a user payload.

    Injected fields win over user keys with the same name. An overridden
    key keeps its original position; new keys are appended. The input dict
    is not modified.
    """
    merged = dict(payload)
    merged.update(control_fields(config))
    return merged
