"""the beautiful world start from here."""

from __future__ import annotations

import logging
import sys

from fastapi import FastAPI

from pushfeed.config import settings
from pushfeed.db import Base, engine
from pushfeed.routers import feeds, hooks, info
from pushfeed.services.keywords import default_patterns


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


setup_logging()
Base.metadata.create_all(engine)

app = FastAPI(title="pushfeed: push events → feed, issues & webhooks")
app.state.keyword_patterns = default_patterns()

app.include_router(info.router)
app.include_router(hooks.router)
app.include_router(feeds.router)
