# app/domain/models/gst.py
"""
GSTR-3B return document.

Immutable value types for every section of the monthly summary return.
Numeric leaves never reject input: anything that is not a finite,
non-negative number is stored as zero.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    SerializationInfo,
    field_validator,
)

ZERO = Decimal("0")


def coerce_amount(value: Any) -> Decimal:
    """Convert form input to a non-negative Decimal, falling back to zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    if not amount.is_finite() or amount < ZERO:
        return ZERO
    return amount


def _amount_to_json(value: Decimal, info: SerializationInfo) -> float | str:
    # Snapshots keep the exact Decimal text; API payloads get plain numbers.
    if info.context and info.context.get("lossless"):
        return str(value)
    return float(value)


Amount = Annotated[
    Decimal,
    BeforeValidator(coerce_amount),
    PlainSerializer(_amount_to_json, return_type=Any, when_used="json"),
]


def check_iso_date(value: str) -> str:
    """Accept ``""`` or a ``YYYY-MM-DD`` calendar date."""
    value = value.strip()
    if value and (len(value) != 10 or not _valid_date(value)):
        raise ValueError(f"Invalid date {value!r} (expected YYYY-MM-DD)")
    return value


def _valid_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


class FilingStatus(str, Enum):
    DRAFT = "draft"
    PREVIEWED = "previewed"
    SUBMITTED = "submitted"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


# ---------------------------------------------------------------------------
# Leaf entries
# ---------------------------------------------------------------------------

class TaxEntry(_Frozen):
    igst: Amount = ZERO
    cgst: Amount = ZERO
    sgst: Amount = ZERO
    cess: Amount = ZERO


class TaxableEntry(TaxEntry):
    taxable_value: Amount = ZERO


class TaxPaymentEntry(_Frozen):
    tax: Amount = ZERO
    interest: Amount = ZERO
    penalty: Amount = ZERO
    fees: Amount = ZERO
    others: Amount = ZERO


# ---------------------------------------------------------------------------
# Return period
# ---------------------------------------------------------------------------

class ReturnPeriod(_Frozen):
    """Filing month; the identity of a return document."""

    month: str = Field(pattern=r"^(0[1-9]|1[0-2])$")
    year: str = Field(pattern=r"^\d{4}$")

    @field_validator("month", mode="before")
    @classmethod
    def _pad_month(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return f"{v:02d}"
        if isinstance(v, str) and len(v.strip()) == 1:
            return v.strip().zfill(2)
        return v

    @field_validator("year", mode="before")
    @classmethod
    def _year_to_str(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @classmethod
    def current(cls, today: date | None = None) -> "ReturnPeriod":
        today = today or date.today()
        return cls(month=today.month, year=today.year)

    @classmethod
    def parse(cls, key: str) -> "ReturnPeriod":
        """Parse a ``YYYY-MM`` period key."""
        year, sep, month = key.partition("-")
        if not sep:
            raise ValueError(f"Invalid period: {key!r} (expected YYYY-MM)")
        return cls(month=month, year=year)

    @property
    def key(self) -> str:
        return f"{self.year}-{self.month}"

    @property
    def fp(self) -> str:
        """Portal filing-period code, MMYYYY."""
        return f"{self.month}{self.year}"

    @property
    def label(self) -> str:
        return f"{calendar.month_name[int(self.month)]} {self.year}"


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

class BasicInfo(_Frozen):
    gstin: str = ""
    legal_name: str = ""
    trade_name: str = ""
    arn: str = ""
    date_of_arn: str = ""


class OutwardSupplies(_Frozen):
    """Table 3.1."""
    taxable_outward: TaxableEntry = Field(default_factory=TaxableEntry)
    zero_rated: TaxableEntry = Field(default_factory=TaxableEntry)
    nil_rated_exempted: TaxableEntry = Field(default_factory=TaxableEntry)
    intra_state_supplies_to: TaxableEntry = Field(default_factory=TaxableEntry)
    inter_state_supplies_to: TaxableEntry = Field(default_factory=TaxableEntry)


class InwardSupplies(_Frozen):
    """Table 3.2 and import / ISD inward lines."""
    reverse_charge: TaxableEntry = Field(default_factory=TaxableEntry)
    import_goods: TaxableEntry = Field(default_factory=TaxableEntry)
    import_services: TaxableEntry = Field(default_factory=TaxableEntry)
    isd_inward: TaxableEntry = Field(default_factory=TaxableEntry)


class EligibleItc(_Frozen):
    """Table 4(A)."""
    import_goods: TaxEntry = Field(default_factory=TaxEntry)
    import_services: TaxEntry = Field(default_factory=TaxEntry)
    inward_supplies: TaxEntry = Field(default_factory=TaxEntry)
    inward_supplies_reverse_charge: TaxEntry = Field(default_factory=TaxEntry)
    others: TaxEntry = Field(default_factory=TaxEntry)


class ItcReversed(_Frozen):
    """Table 4(B)."""
    as_per_rule_42_and_43: TaxEntry = Field(default_factory=TaxEntry)
    others: TaxEntry = Field(default_factory=TaxEntry)


class ExemptNilNonGst(_Frozen):
    """Table 5."""
    inter_state_supplies: Amount = ZERO
    intra_state_supplies: Amount = ZERO


class TaxPaid(_Frozen):
    """Table 6.1, one payment row per tax head."""
    igst: TaxPaymentEntry = Field(default_factory=TaxPaymentEntry)
    cgst: TaxPaymentEntry = Field(default_factory=TaxPaymentEntry)
    sgst: TaxPaymentEntry = Field(default_factory=TaxPaymentEntry)
    cess: TaxPaymentEntry = Field(default_factory=TaxPaymentEntry)


class Verification(_Frozen):
    date: str = ""  # YYYY-MM-DD
    authorized_signatory_name: str = ""
    designation: str = ""
    place: str = ""

    @field_validator("date")
    @classmethod
    def _iso_date(cls, v: str) -> str:
        return check_iso_date(v)


# ---------------------------------------------------------------------------
# Aggregate root
# ---------------------------------------------------------------------------

class Gstr3bDocument(_Frozen):
    basic_info: BasicInfo = Field(default_factory=BasicInfo)
    return_period: ReturnPeriod
    outward_supplies: OutwardSupplies = Field(default_factory=OutwardSupplies)
    amendment_outward_supplies: TaxableEntry = Field(default_factory=TaxableEntry)
    inward_supplies: InwardSupplies = Field(default_factory=InwardSupplies)
    eligible_itc: EligibleItc = Field(default_factory=EligibleItc)
    itc_reversed: ItcReversed = Field(default_factory=ItcReversed)
    exempt_nil_non_gst: ExemptNilNonGst = Field(default_factory=ExemptNilNonGst)
    interest_late_fee: TaxEntry = Field(default_factory=TaxEntry)
    tax_paid: TaxPaid = Field(default_factory=TaxPaid)
    verification: Verification = Field(default_factory=Verification)
    status: FilingStatus = FilingStatus.DRAFT

    @classmethod
    def empty(cls, period: ReturnPeriod, today: date | None = None) -> "Gstr3bDocument":
        """Blank return for ``period``; verification date defaults to today."""
        today = today or date.today()
        return cls(
            return_period=period,
            verification=Verification(date=today.isoformat()),
        )

    @property
    def is_submitted(self) -> bool:
        return self.status == FilingStatus.SUBMITTED


class Gstr3bTotals(_Frozen):
    """Computed summary shown next to the form and frozen on submission."""
    total_outward_tax: Amount = ZERO
    total_inward_tax: Amount = ZERO
    total_eligible_itc: Amount = ZERO
    total_itc_reversed: Amount = ZERO
    total_igst: Amount = ZERO
    total_cgst: Amount = ZERO
    total_sgst: Amount = ZERO
    total_cess: Amount = ZERO
    net_tax_liability: Amount = ZERO
