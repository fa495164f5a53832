# app/api/v1/deps.py
"""
FastAPI dependencies for the v1 API layer.

``get_registry`` hands every request the process-wide FilingRegistry, built
once from settings (draft store + submission backend).
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache

from fastapi import HTTPException, status

from app.core.config import settings
from app.domain.models.gst import ReturnPeriod
from app.domain.services.gst_workflow import FilingRegistry
from app.infrastructure.cache.draft_store import build_draft_store
from app.infrastructure.external.gst_filing_client import build_submission_backend

logger = logging.getLogger("api.v1.deps")

_PERIOD_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


@lru_cache(maxsize=1)
def get_registry() -> FilingRegistry:
    registry = FilingRegistry(
        backend=build_submission_backend(settings),
        draft_store=build_draft_store(settings),
    )
    logger.info(
        "Filing registry ready (drafts=%s, filing=%s)",
        settings.DRAFT_STORE_BACKEND, settings.FILING_BACKEND,
    )
    return registry


def parse_period(period: str) -> ReturnPeriod:
    """Path-parameter dependency: ``YYYY-MM`` → ReturnPeriod (HTTP 400 if malformed)."""
    if not _PERIOD_RE.match(period):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid period: {period} (expected YYYY-MM)",
        )
    return ReturnPeriod.parse(period)
