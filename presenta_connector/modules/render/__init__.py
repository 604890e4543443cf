"""Render module - Presenta template rendering."""

from .router import router
from .schemas import PresentaCredentials, RenderConfig, RenderResult
from .service import RenderService

__all__ = ["router", "PresentaCredentials", "RenderConfig", "RenderResult", "RenderService"]
