# app/domain/models/gst_commands.py
"""
Typed edit commands for a GSTR-3B document.

Each command names one section, one slot within it (where the section has
slots) and one field. ``apply_command`` returns a new document; the input
document is never modified.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.domain.models.gst import Gstr3bDocument, check_iso_date, coerce_amount

TaxField = Literal["igst", "cgst", "sgst", "cess"]
TaxableField = Literal["taxable_value", "igst", "cgst", "sgst", "cess"]
PaymentField = Literal["tax", "interest", "penalty", "fees", "others"]

OutwardSlot = Literal[
    "taxable_outward",
    "zero_rated",
    "nil_rated_exempted",
    "intra_state_supplies_to",
    "inter_state_supplies_to",
]
InwardSlot = Literal["reverse_charge", "import_goods", "import_services", "isd_inward"]
EligibleItcSlot = Literal[
    "import_goods",
    "import_services",
    "inward_supplies",
    "inward_supplies_reverse_charge",
    "others",
]
ItcReversedSlot = Literal["as_per_rule_42_and_43", "others"]
TaxHead = Literal["igst", "cgst", "sgst", "cess"]


def _set_leaf(section: BaseModel, field: str, value: Any) -> BaseModel:
    return section.model_copy(update={field: value})


def _set_slot(section: BaseModel, slot: str, field: str, value: Any) -> BaseModel:
    entry = getattr(section, slot)
    return section.model_copy(update={slot: _set_leaf(entry, field, value)})


class _Command(BaseModel):
    model_config = ConfigDict(frozen=True)

    def apply(self, doc: Gstr3bDocument) -> Gstr3bDocument:
        raise NotImplementedError


class _AmountCommand(_Command):
    value: Any = None

    @property
    def amount(self):
        return coerce_amount(self.value)


# ---------------------------------------------------------------------------
# Text sections
# ---------------------------------------------------------------------------

class SetBasicInfo(_Command):
    """ARN fields are stamped on submission and cannot be edited."""
    kind: Literal["basic_info"] = "basic_info"
    field: Literal["gstin", "legal_name", "trade_name"]
    value: str = ""

    def apply(self, doc: Gstr3bDocument) -> Gstr3bDocument:
        return doc.model_copy(
            update={"basic_info": _set_leaf(doc.basic_info, self.field, self.value)}
        )


class SetVerification(_Command):
    kind: Literal["verification"] = "verification"
    field: Literal["date", "authorized_signatory_name", "designation", "place"]
    value: str = ""

    @model_validator(mode="after")
    def _check_date(self) -> "SetVerification":
        if self.field == "date":
            check_iso_date(self.value)
        return self

    def apply(self, doc: Gstr3bDocument) -> Gstr3bDocument:
        return doc.model_copy(
            update={"verification": _set_leaf(doc.verification, self.field, self.value)}
        )


# ---------------------------------------------------------------------------
# Numeric sections
# ---------------------------------------------------------------------------

class SetOutwardSupply(_AmountCommand):
    kind: Literal["outward_supply"] = "outward_supply"
    slot: OutwardSlot
    field: TaxableField

    def apply(self, doc: Gstr3bDocument) -> Gstr3bDocument:
        section = _set_slot(doc.outward_supplies, self.slot, self.field, self.amount)
        return doc.model_copy(update={"outward_supplies": section})


class SetAmendmentOutwardSupply(_AmountCommand):
    kind: Literal["amendment_outward_supply"] = "amendment_outward_supply"
    field: TaxableField

    def apply(self, doc: Gstr3bDocument) -> Gstr3bDocument:
        entry = _set_leaf(doc.amendment_outward_supplies, self.field, self.amount)
        return doc.model_copy(update={"amendment_outward_supplies": entry})


class SetInwardSupply(_AmountCommand):
    kind: Literal["inward_supply"] = "inward_supply"
    slot: InwardSlot
    field: TaxableField

    def apply(self, doc: Gstr3bDocument) -> Gstr3bDocument:
        section = _set_slot(doc.inward_supplies, self.slot, self.field, self.amount)
        return doc.model_copy(update={"inward_supplies": section})


class SetEligibleItc(_AmountCommand):
    kind: Literal["eligible_itc"] = "eligible_itc"
    slot: EligibleItcSlot
    field: TaxField

    def apply(self, doc: Gstr3bDocument) -> Gstr3bDocument:
        section = _set_slot(doc.eligible_itc, self.slot, self.field, self.amount)
        return doc.model_copy(update={"eligible_itc": section})


class SetItcReversed(_AmountCommand):
    kind: Literal["itc_reversed"] = "itc_reversed"
    slot: ItcReversedSlot
    field: TaxField

    def apply(self, doc: Gstr3bDocument) -> Gstr3bDocument:
        section = _set_slot(doc.itc_reversed, self.slot, self.field, self.amount)
        return doc.model_copy(update={"itc_reversed": section})


class SetExemptNilNonGst(_AmountCommand):
    kind: Literal["exempt_nil_non_gst"] = "exempt_nil_non_gst"
    field: Literal["inter_state_supplies", "intra_state_supplies"]

    def apply(self, doc: Gstr3bDocument) -> Gstr3bDocument:
        section = _set_leaf(doc.exempt_nil_non_gst, self.field, self.amount)
        return doc.model_copy(update={"exempt_nil_non_gst": section})


class SetInterestLateFee(_AmountCommand):
    kind: Literal["interest_late_fee"] = "interest_late_fee"
    field: TaxField

    def apply(self, doc: Gstr3bDocument) -> Gstr3bDocument:
        entry = _set_leaf(doc.interest_late_fee, self.field, self.amount)
        return doc.model_copy(update={"interest_late_fee": entry})


class SetTaxPaid(_AmountCommand):
    kind: Literal["tax_paid"] = "tax_paid"
    head: TaxHead
    field: PaymentField

    def apply(self, doc: Gstr3bDocument) -> Gstr3bDocument:
        section = _set_slot(doc.tax_paid, self.head, self.field, self.amount)
        return doc.model_copy(update={"tax_paid": section})


UpdateCommand = Annotated[
    Union[
        SetBasicInfo,
        SetVerification,
        SetOutwardSupply,
        SetAmendmentOutwardSupply,
        SetInwardSupply,
        SetEligibleItc,
        SetItcReversed,
        SetExemptNilNonGst,
        SetInterestLateFee,
        SetTaxPaid,
    ],
    Field(discriminator="kind"),
]


def apply_command(doc: Gstr3bDocument, command: UpdateCommand) -> Gstr3bDocument:
    """Return ``doc`` with the single edit described by ``command`` applied."""
    return command.apply(doc)
