"""
Common types shared across modules.
"""

from dataclasses import dataclass


@dataclass
class RequestContext:
    """Per-request tracing context, attached to every log record."""
    request_id: str
    actor: str = "system"
    item_index: int | None = None
