# app/domain/services/gst_arn.py
"""
Acknowledgement Reference Number (ARN) issuance.

Format: ``AB`` + filing date ``YYYYMMDD`` + six digits drawn uniformly from
100000-999999, e.g. ``AB20250120482913``. Numbers already handed out are
skipped, so one issuer never repeats an ARN.
"""

from __future__ import annotations

import logging
import random
import re
from datetime import date
from typing import Container

logger = logging.getLogger("gst_arn")

ARN_PREFIX = "AB"
ARN_RE = re.compile(r"^AB\d{14}$")

_SUFFIX_MIN = 100000
_SUFFIX_MAX = 999999


class ArnGenerationError(Exception):
    """Raised when no unused ARN could be drawn within the attempt budget."""
    pass


def is_valid_arn(value: str) -> bool:
    return bool(value) and ARN_RE.match(value) is not None


def generate_arn(
    today: date,
    issued: Container[str] = (),
    *,
    rng: random.Random | None = None,
    max_attempts: int = 20,
) -> str:
    """Draw an ARN for ``today`` that is not in ``issued``."""
    rng = rng or random.Random()
    stamp = today.strftime("%Y%m%d")
    for attempt in range(1, max_attempts + 1):
        arn = f"{ARN_PREFIX}{stamp}{rng.randint(_SUFFIX_MIN, _SUFFIX_MAX)}"
        if arn not in issued:
            return arn
        logger.warning("ARN collision on attempt %d: %s", attempt, arn)
    raise ArnGenerationError(
        f"Could not issue a unique ARN for {today.isoformat()} after {max_attempts} attempts"
    )
