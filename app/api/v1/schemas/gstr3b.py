# app/api/v1/schemas/gstr3b.py
"""Request and response schemas for GSTR-3B endpoints."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from app.domain.models.gst_commands import UpdateCommand


class EditRequest(BaseModel):
    """One typed edit, e.g. ``{"command": {"kind": "outward_supply", ...}}``."""
    command: UpdateCommand


class SubmitRequest(BaseModel):
    confirmed: bool = Field(description="User accepted the confirmation prompt")
    net_tax_liability: Decimal = Field(description="Amount shown in the confirmation prompt")


class ReturnResponse(BaseModel):
    period: str
    status: str
    document: dict[str, Any]
    totals: dict[str, Any]


class ConfirmationResponse(BaseModel):
    prompt: str
    # exact decimal text; echo it back unchanged in SubmitRequest
    net_tax_liability: str


class SubmissionResponse(BaseModel):
    arn: str
    filed_at: str
    period: str
    totals: dict[str, Any]
