"""Health check routes."""

from fastapi import APIRouter

from presenta_connector import __version__

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "version": __version__}
