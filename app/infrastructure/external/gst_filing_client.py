# app/infrastructure/external/gst_filing_client.py
"""
GSTR-3B submission backends.

The filing workflow treats submission as an opaque remote call that either
returns a receipt (ARN + filing timestamp) or raises SubmissionError.

  LocalSubmissionBackend  issues ARNs in-process (development / offline use)
  HttpSubmissionBackend   POSTs the GSTR-3B JSON to a filing gateway
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Protocol, Set

import httpx

from app.domain.models.gst import Gstr3bDocument
from app.domain.services.gst_arn import ArnGenerationError, generate_arn

logger = logging.getLogger("gst_filing_client")


class SubmissionError(Exception):
    """Raised when the filing backend rejects or fails to process a return."""

    def __init__(self, message: str, status_code: int = 0, response: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response or {}


@dataclass(frozen=True)
class SubmissionReceipt:
    arn: str
    filed_at: datetime


class SubmissionBackend(Protocol):
    async def submit(self, doc: Gstr3bDocument, payload: Dict[str, Any]) -> SubmissionReceipt: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(raw: str) -> datetime:
    """ISO-8601 timestamp; a trailing ``Z`` means UTC."""
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw)


class LocalSubmissionBackend:
    """Issues ARNs locally, remembering the ARNs handed out on the current filing date."""

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        rng: random.Random | None = None,
        max_attempts: int = 20,
    ) -> None:
        self._clock = clock
        self._rng = rng or random.Random()
        self._max_attempts = max_attempts
        self._issued: Set[str] = set()
        self._issued_on: date | None = None

    @property
    def issued(self) -> frozenset[str]:
        return frozenset(self._issued)

    async def submit(self, doc: Gstr3bDocument, payload: Dict[str, Any]) -> SubmissionReceipt:
        filed_at = self._clock()
        filing_date = filed_at.date()
        if filing_date != self._issued_on:
            # ARNs embed the filing date; only same-day ones can collide
            self._issued.clear()
            self._issued_on = filing_date
        try:
            arn = generate_arn(
                filing_date,
                self._issued,
                rng=self._rng,
                max_attempts=self._max_attempts,
            )
        except ArnGenerationError as exc:
            raise SubmissionError(str(exc)) from exc
        self._issued.add(arn)
        logger.info("Local filing accepted: gstin=%s period=%s arn=%s",
                    doc.basic_info.gstin, doc.return_period.key, arn)
        return SubmissionReceipt(arn=arn, filed_at=filed_at)


class HttpSubmissionBackend:
    """
    Files the return through an HTTP gateway.

    Expected success body: ``{"arn": "...", "filed_at": "<ISO timestamp>"}``,
    optionally wrapped in ``{"data": {...}}``.
    """

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 30.0) -> None:
        self.base = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base}{path}"
        logger.info("GST filing POST %s", path)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                r = await client.post(url, json=payload, headers=self._headers())
                r.raise_for_status()
                return r.json()
            except httpx.HTTPStatusError as exc:
                body: dict = {}
                try:
                    body = exc.response.json()
                except ValueError:
                    pass
                logger.error("GST filing HTTP error: %s -> %d %s",
                             path, exc.response.status_code, body)
                raise SubmissionError(
                    f"Filing gateway error: {exc.response.status_code}",
                    status_code=exc.response.status_code,
                    response=body,
                ) from exc
            except httpx.TimeoutException as exc:
                logger.error("GST filing timeout: %s", path)
                raise SubmissionError("Filing gateway timeout") from exc
            except httpx.HTTPError as exc:
                logger.error("GST filing transport error: %s %s", path, exc)
                raise SubmissionError(f"Filing gateway unreachable: {exc}") from exc
            except ValueError as exc:
                raise SubmissionError("Filing gateway returned a non-JSON body") from exc

    async def submit(self, doc: Gstr3bDocument, payload: Dict[str, Any]) -> SubmissionReceipt:
        data = await self._post("/gstr3b/file", payload)
        if not isinstance(data, dict):
            raise SubmissionError("Filing gateway returned an unexpected body")
        body = data.get("data") if isinstance(data.get("data"), dict) else data

        arn = body.get("arn") or body.get("ack_num") or ""
        if not arn:
            raise SubmissionError("Filing gateway response has no ARN", response=data)

        filed_raw = body.get("filed_at")
        try:
            filed_at = _parse_timestamp(str(filed_raw)) if filed_raw else _utcnow()
        except (TypeError, ValueError) as exc:
            raise SubmissionError(f"Invalid filed_at in response: {filed_raw!r}", response=data) from exc

        return SubmissionReceipt(arn=str(arn), filed_at=filed_at)


def build_submission_backend(settings) -> SubmissionBackend:
    """Create the backend configured by ``FILING_BACKEND``."""
    kind = settings.FILING_BACKEND.lower()
    if kind == "http":
        return HttpSubmissionBackend(
            settings.GST_FILING_BASE_URL,
            api_key=settings.GST_FILING_API_KEY,
            timeout=settings.GST_FILING_TIMEOUT,
        )
    if kind == "local":
        return LocalSubmissionBackend(max_attempts=settings.ARN_MAX_ATTEMPTS)
    raise ValueError(f"Unknown FILING_BACKEND: {settings.FILING_BACKEND!r}")
