"""Ruter Ingfo?"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from pushfeed.config import settings

router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
def health():
    """Health check."""
    return f"ok ({settings.app_url})"
