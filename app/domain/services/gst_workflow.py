# app/domain/services/gst_workflow.py
"""
GSTR-3B Filing Workflow Engine.

Manages the status lifecycle of a monthly GSTR-3B return:
  draft → previewed → submitted
  previewed → draft (any edit after preview)
  draft → submitted (submit without a separate preview)

Edits, totals, validation and preview are synchronous. Draft save/load and
submission are the only awaited calls; when they fail the working document
and its status stay exactly as they were.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict

from app.domain.models.gst import (
    FilingStatus,
    Gstr3bDocument,
    Gstr3bTotals,
    ReturnPeriod,
    coerce_amount,
)
from app.domain.models.gst_commands import UpdateCommand, apply_command
from app.domain.services.gst_aggregation import compute_totals, format_amount
from app.domain.services.gst_arn import is_valid_arn
from app.domain.services.gst_export import make_gstr3b_json
from app.domain.services.gst_validation import Violation, validate_document
from app.infrastructure.cache.draft_store import DraftStore, DraftStoreError
from app.infrastructure.external.gst_filing_client import (
    SubmissionBackend,
    SubmissionError,
)

logger = logging.getLogger("gst_workflow")


# ---------------------------------------------------------------------------
# Valid state transitions
# ---------------------------------------------------------------------------

VALID_TRANSITIONS: dict[str, list[str]] = {
    FilingStatus.DRAFT.value: [FilingStatus.PREVIEWED.value, FilingStatus.SUBMITTED.value],
    FilingStatus.PREVIEWED.value: [FilingStatus.DRAFT.value, FilingStatus.SUBMITTED.value],
    FilingStatus.SUBMITTED.value: [],  # terminal
}

ALL_STATUSES = set(VALID_TRANSITIONS.keys())


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class InvalidGSTTransitionError(Exception):
    """Raised when a GSTR-3B status transition is not allowed."""
    pass


class DocumentFrozenError(Exception):
    """Raised on an attempt to change a submitted (or submitting) return."""
    pass


class ValidationFailedError(Exception):
    """Raised by submit when mandatory fields are missing."""

    def __init__(self, violations: list[Violation]):
        super().__init__("; ".join(v.message for v in violations))
        self.violations = violations


class SubmissionNotConfirmedError(Exception):
    """Raised when submit is called without the user's confirmation."""
    pass


class StaleConfirmationError(Exception):
    """Raised when the confirmed amount differs from the current net liability."""

    def __init__(self, expected: Decimal, confirmed: Decimal):
        super().__init__(
            f"Confirmed net tax liability {format_amount(confirmed)} does not match "
            f"the current amount {format_amount(expected)}"
        )
        self.expected = expected
        self.confirmed = confirmed


def validate_gst_transition(current_status: str, new_status: str) -> None:
    """Raise InvalidGSTTransitionError if the transition is not allowed."""
    current = FilingStatus(current_status).value
    new = FilingStatus(new_status).value
    allowed = VALID_TRANSITIONS.get(current, [])
    if new not in allowed:
        raise InvalidGSTTransitionError(
            f"Cannot transition from '{current}' to '{new}'. "
            f"Allowed: {allowed}"
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class PreviewResult:
    status: FilingStatus
    violations: list[Violation] = field(default_factory=list)
    totals: Gstr3bTotals | None = None

    @property
    def ok(self) -> bool:
        return not self.violations


@dataclass(frozen=True)
class SubmissionConfirmation:
    """The user's answer to the confirmation prompt, echoing the amount shown."""
    net_tax_liability: Decimal
    confirmed: bool = True


@dataclass(frozen=True)
class SubmissionRecord:
    """Permanent record of a filed return; totals are frozen at filing time."""
    arn: str
    filed_at: datetime
    totals: Gstr3bTotals
    document: Gstr3bDocument

    def to_dict(self) -> Dict[str, Any]:
        return {
            "arn": self.arn,
            "filed_at": self.filed_at.isoformat(),
            "period": self.document.return_period.key,
            "totals": self.totals.model_dump(mode="json"),
        }


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------

class Gstr3bFilingWorkflow:
    """Owns one return document and drives it through the filing lifecycle."""

    def __init__(
        self,
        document: Gstr3bDocument,
        *,
        backend: SubmissionBackend,
        draft_store: DraftStore | None = None,
    ) -> None:
        self._document = document
        self._backend = backend
        self._draft_store = draft_store
        self._record: SubmissionRecord | None = None
        self._in_flight: asyncio.Task | None = None

    @property
    def document(self) -> Gstr3bDocument:
        return self._document

    @property
    def status(self) -> FilingStatus:
        return self._document.status

    @property
    def period(self) -> ReturnPeriod:
        return self._document.return_period

    @property
    def record(self) -> SubmissionRecord | None:
        return self._record

    # -- editing -----------------------------------------------------------

    def _ensure_editable(self) -> None:
        if self._document.is_submitted:
            raise DocumentFrozenError(
                f"GSTR-3B for {self.period.label} is already submitted "
                f"(ARN {self._document.basic_info.arn}); file an amendment in a later period"
            )
        if self._in_flight is not None:
            raise DocumentFrozenError(
                f"GSTR-3B for {self.period.label} is being submitted"
            )

    def edit(self, command: UpdateCommand) -> Gstr3bDocument:
        """Apply one edit. An edit after preview sends the return back to draft."""
        self._ensure_editable()
        updated = apply_command(self._document, command)
        if updated.status == FilingStatus.PREVIEWED:
            validate_gst_transition(updated.status, FilingStatus.DRAFT)
            updated = updated.model_copy(update={"status": FilingStatus.DRAFT})
            logger.info("GSTR-3B %s edited after preview; back to draft", self.period.key)
        self._document = updated
        return updated

    def replace_document(self, document: Gstr3bDocument) -> Gstr3bDocument:
        """Swap in a confirmed, previously loaded draft for the same period."""
        self._ensure_editable()
        if document.return_period != self.period:
            raise ValueError(
                f"Draft period {document.return_period.key} does not match {self.period.key}"
            )
        if document.is_submitted or document.basic_info.arn:
            raise DocumentFrozenError("A submitted return cannot be loaded as a draft")
        self._document = document.model_copy(update={"status": FilingStatus.DRAFT})
        logger.info("GSTR-3B %s replaced from saved draft", self.period.key)
        return self._document

    # -- computation -------------------------------------------------------

    def totals(self) -> Gstr3bTotals:
        return compute_totals(self._document)

    def validate(self) -> list[Violation]:
        return validate_document(self._document)

    def request_preview(self) -> PreviewResult:
        """Move to previewed if the return is complete; otherwise report what's missing."""
        if self.status != FilingStatus.PREVIEWED:
            validate_gst_transition(self.status, FilingStatus.PREVIEWED)

        violations = self.validate()
        if violations:
            logger.info(
                "GSTR-3B %s preview blocked: %s",
                self.period.key, [v.field for v in violations],
            )
            return PreviewResult(status=self.status, violations=violations)

        self._document = self._document.model_copy(update={"status": FilingStatus.PREVIEWED})
        return PreviewResult(status=self.status, totals=self.totals())

    def confirmation_prompt(self) -> str:
        totals = self.totals()
        return (
            f"Are you sure you want to submit GSTR-3B for {self.period.label}?\n\n"
            f"Net Tax Liability: ₹{format_amount(totals.net_tax_liability)}"
        )

    # -- submission --------------------------------------------------------

    async def submit(self, confirmation: SubmissionConfirmation) -> SubmissionRecord:
        """
        File the return.

        A repeated call while a filing is in flight waits for that filing, and
        a call after a successful filing returns the existing record, so one
        return never receives two ARNs.
        """
        if self._record is not None:
            logger.info("GSTR-3B %s already submitted (ARN %s)", self.period.key, self._record.arn)
            return self._record
        if self._in_flight is not None:
            logger.info("GSTR-3B %s submission already in progress", self.period.key)
            return await asyncio.shield(self._in_flight)

        validate_gst_transition(self.status, FilingStatus.SUBMITTED)

        violations = self.validate()
        if violations:
            raise ValidationFailedError(violations)

        if not confirmation.confirmed:
            raise SubmissionNotConfirmedError(
                f"Submission of GSTR-3B for {self.period.label} was not confirmed"
            )

        totals = self.totals()
        confirmed_amount = coerce_amount(confirmation.net_tax_liability)
        if confirmed_amount != totals.net_tax_liability:
            raise StaleConfirmationError(totals.net_tax_liability, confirmed_amount)

        task = asyncio.ensure_future(self._file(self._document, totals))
        self._in_flight = task
        try:
            return await task
        finally:
            self._in_flight = None

    async def _file(self, doc: Gstr3bDocument, totals: Gstr3bTotals) -> SubmissionRecord:
        payload = make_gstr3b_json(doc)
        logger.info(
            "Submitting GSTR-3B %s (gstin=%s, net_tax_liability=%s)",
            doc.return_period.key, doc.basic_info.gstin, format_amount(totals.net_tax_liability),
        )
        try:
            receipt = await self._backend.submit(doc, payload)
        except SubmissionError:
            logger.exception("GSTR-3B %s submission failed; status unchanged", doc.return_period.key)
            raise

        if not is_valid_arn(receipt.arn):
            raise SubmissionError(f"Backend returned a malformed ARN: {receipt.arn!r}")

        basic = doc.basic_info.model_copy(
            update={"arn": receipt.arn, "date_of_arn": receipt.filed_at.date().isoformat()}
        )
        submitted = doc.model_copy(update={"basic_info": basic, "status": FilingStatus.SUBMITTED})
        self._document = submitted
        self._record = SubmissionRecord(
            arn=receipt.arn,
            filed_at=receipt.filed_at,
            totals=totals,
            document=submitted,
        )
        logger.info("GSTR-3B %s submitted: ARN %s", doc.return_period.key, receipt.arn)

        if self._draft_store is not None:
            try:
                await self._draft_store.delete(doc.return_period)
            except DraftStoreError:
                logger.warning("Could not clear draft for %s after filing", doc.return_period.key)

        return self._record

    # -- drafts ------------------------------------------------------------

    def _require_store(self) -> DraftStore:
        if self._draft_store is None:
            raise DraftStoreError("No draft store configured")
        return self._draft_store

    async def save_draft(self) -> None:
        await self._require_store().save(self._document)

    async def load_draft(self) -> Gstr3bDocument:
        """Fetch the saved draft for this period without applying it."""
        return await self._require_store().load(self.period)


# ---------------------------------------------------------------------------
# One workflow per return period
# ---------------------------------------------------------------------------

class FilingRegistry:
    """Keeps exactly one working document per return period."""

    def __init__(
        self,
        *,
        backend: SubmissionBackend,
        draft_store: DraftStore | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._backend = backend
        self._draft_store = draft_store
        self._today = today
        self._workflows: dict[str, Gstr3bFilingWorkflow] = {}

    def get(self, period: ReturnPeriod) -> Gstr3bFilingWorkflow | None:
        return self._workflows.get(period.key)

    def open(self, period: ReturnPeriod | None = None) -> Gstr3bFilingWorkflow:
        """Return the period's workflow, creating an empty return on first use.

        Without a period, the current month is opened.
        """
        if period is None:
            period = ReturnPeriod.current(self._today())
        wf = self._workflows.get(period.key)
        if wf is None:
            wf = Gstr3bFilingWorkflow(
                Gstr3bDocument.empty(period, self._today()),
                backend=self._backend,
                draft_store=self._draft_store,
            )
            self._workflows[period.key] = wf
            logger.info("GSTR-3B %s opened", period.key)
        return wf


# ---------------------------------------------------------------------------
# Notification messages
# ---------------------------------------------------------------------------

def get_gst_notification_message(
    status: str,
    period_label: str = "",
    arn: str | None = None,
) -> str:
    """Build a user-facing message for a GSTR-3B status change."""
    period_str = f" for {period_label}" if period_label else ""

    messages = {
        FilingStatus.DRAFT.value: (
            f"Your GSTR-3B{period_str} is in draft. Preview it again before submitting."
        ),
        FilingStatus.PREVIEWED.value: (
            f"Your GSTR-3B{period_str} is ready. Review the totals and submit."
        ),
        FilingStatus.SUBMITTED.value: (
            f"Your GSTR-3B{period_str} has been submitted."
            + (f" ARN: {arn}" if arn else "")
        ),
    }
    return messages.get(status, f"GSTR-3B status updated to: {status}")
