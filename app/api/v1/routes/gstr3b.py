# app/api/v1/routes/gstr3b.py
"""
V1 API endpoints for the GSTR-3B return of a single period.

The form front-end opens a period, sends one typed edit per field change,
renders the recomputed totals, then previews and submits.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from app.api.v1.deps import get_registry, parse_period
from app.api.v1.envelope import error, ok
from app.api.v1.schemas.gstr3b import (
    ConfirmationResponse,
    EditRequest,
    ReturnResponse,
    SubmissionResponse,
    SubmitRequest,
)
from app.domain.models.gst import ReturnPeriod
from app.domain.services.gst_aggregation import compute_totals
from app.domain.services.gst_workflow import (
    DocumentFrozenError,
    FilingRegistry,
    Gstr3bFilingWorkflow,
    InvalidGSTTransitionError,
    StaleConfirmationError,
    SubmissionConfirmation,
    SubmissionNotConfirmedError,
    ValidationFailedError,
    get_gst_notification_message,
)
from app.infrastructure.cache.draft_store import DraftNotFoundError, DraftStoreError
from app.infrastructure.external.gst_filing_client import SubmissionError

logger = logging.getLogger("api.v1.gstr3b")

router = APIRouter(prefix="/gstr3b", tags=["GSTR-3B"])


# ============================================================
# Helpers
# ============================================================

def _to_return_response(wf: Gstr3bFilingWorkflow) -> dict:
    return ReturnResponse(
        period=wf.period.key,
        status=wf.status.value,
        document=wf.document.model_dump(mode="json"),
        totals=wf.totals().model_dump(mode="json"),
    ).model_dump()


def _get_workflow(rp: ReturnPeriod, registry: FilingRegistry) -> Gstr3bFilingWorkflow:
    wf = registry.get(rp)
    if wf is None:
        raise HTTPException(status_code=404, detail=f"No GSTR-3B opened for {rp.key}")
    return wf


def _violations_response(message: str, violations) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=error(message, errors=[v.to_dict() for v in violations]),
    )


# ============================================================
# Endpoints
# ============================================================

@router.post("/{period}", summary="Open the return for a period")
async def open_return(
    rp: ReturnPeriod = Depends(parse_period),
    registry: FilingRegistry = Depends(get_registry),
):
    """Create the empty return for a period, or return the existing one."""
    wf = registry.open(rp)
    return ok(data=_to_return_response(wf))


@router.get("/{period}", summary="Get return and totals")
async def get_return(
    rp: ReturnPeriod = Depends(parse_period),
    registry: FilingRegistry = Depends(get_registry),
):
    wf = _get_workflow(rp, registry)
    return ok(data=_to_return_response(wf))


@router.patch("/{period}", summary="Apply one field edit")
async def edit_return(
    body: EditRequest,
    rp: ReturnPeriod = Depends(parse_period),
    registry: FilingRegistry = Depends(get_registry),
):
    """Apply a typed edit and return the recomputed totals."""
    wf = _get_workflow(rp, registry)
    try:
        wf.edit(body.command)
    except DocumentFrozenError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return ok(data=_to_return_response(wf))


@router.post("/{period}/preview", summary="Validate and preview")
async def preview_return(
    rp: ReturnPeriod = Depends(parse_period),
    registry: FilingRegistry = Depends(get_registry),
):
    wf = _get_workflow(rp, registry)
    try:
        result = wf.request_preview()
    except InvalidGSTTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    if not result.ok:
        return _violations_response("Please fix the following errors", result.violations)
    return ok(
        data=_to_return_response(wf),
        message=get_gst_notification_message(wf.status.value, rp.label),
    )


@router.get("/{period}/confirmation", summary="Confirmation prompt for submission")
async def confirmation(
    rp: ReturnPeriod = Depends(parse_period),
    registry: FilingRegistry = Depends(get_registry),
):
    wf = _get_workflow(rp, registry)
    return ok(data=ConfirmationResponse(
        prompt=wf.confirmation_prompt(),
        net_tax_liability=str(wf.totals().net_tax_liability),
    ).model_dump())


@router.post("/{period}/submit", summary="Submit the return")
async def submit_return(
    body: SubmitRequest,
    rp: ReturnPeriod = Depends(parse_period),
    registry: FilingRegistry = Depends(get_registry),
):
    """File the return. The body must echo the amount from the confirmation prompt."""
    wf = _get_workflow(rp, registry)
    try:
        record = await wf.submit(SubmissionConfirmation(
            net_tax_liability=body.net_tax_liability,
            confirmed=body.confirmed,
        ))
    except ValidationFailedError as exc:
        return _violations_response("Please fix the following errors", exc.violations)
    except SubmissionNotConfirmedError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except (StaleConfirmationError, InvalidGSTTransitionError) as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except SubmissionError as exc:
        raise HTTPException(status_code=502, detail=str(exc))

    return ok(
        data=SubmissionResponse(**record.to_dict()).model_dump(),
        message=get_gst_notification_message(wf.status.value, rp.label, arn=record.arn),
    )


@router.post("/{period}/draft", summary="Save draft")
async def save_draft(
    rp: ReturnPeriod = Depends(parse_period),
    registry: FilingRegistry = Depends(get_registry),
):
    wf = _get_workflow(rp, registry)
    try:
        await wf.save_draft()
    except DraftStoreError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    return ok(message="Draft saved successfully!")


@router.get("/{period}/draft", summary="Preview saved draft")
async def load_draft(
    rp: ReturnPeriod = Depends(parse_period),
    registry: FilingRegistry = Depends(get_registry),
):
    """Return the saved draft and its tax summary without replacing the working return."""
    wf = registry.open(rp)
    try:
        draft = await wf.load_draft()
    except DraftNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except DraftStoreError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    return ok(data=ReturnResponse(
        period=draft.return_period.key,
        status=draft.status.value,
        document=draft.model_dump(mode="json"),
        totals=compute_totals(draft).model_dump(mode="json"),
    ).model_dump())


@router.post("/{period}/draft/apply", summary="Replace the return with the saved draft")
async def apply_draft(
    rp: ReturnPeriod = Depends(parse_period),
    registry: FilingRegistry = Depends(get_registry),
):
    wf = registry.open(rp)
    try:
        draft = await wf.load_draft()
        wf.replace_document(draft)
    except DraftNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except DraftStoreError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    except DocumentFrozenError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return ok(data=_to_return_response(wf), message="Draft loaded successfully!")
