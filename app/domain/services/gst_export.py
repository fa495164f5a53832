# app/domain/services/gst_export.py
"""
Build the GSTR-3B JSON payload sent to the filing gateway.

Section keys follow the GST portal's GSTR-3B offline-tool schema
(sup_details / itc_elg / inward_sup / intr_ltfee / tx_pmt).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

from app.domain.models.gst import (
    ZERO,
    Gstr3bDocument,
    TaxableEntry,
    TaxEntry,
    TaxPaymentEntry,
)


def _d(val: Decimal | None) -> float:
    """Convert Decimal to float for JSON serialization."""
    if val is None:
        return 0.0
    return float(val)


def _taxable(entry: TaxableEntry) -> Dict[str, float]:
    return {
        "txval": _d(entry.taxable_value),
        "igst": _d(entry.igst),
        "cgst": _d(entry.cgst),
        "sgst": _d(entry.sgst),
        "cess": _d(entry.cess),
    }


def _tax(entry: TaxEntry, ty: str | None = None) -> Dict[str, Any]:
    row: Dict[str, Any] = {"ty": ty} if ty else {}
    row.update({
        "igst": _d(entry.igst),
        "cgst": _d(entry.cgst),
        "sgst": _d(entry.sgst),
        "cess": _d(entry.cess),
    })
    return row


def _payment(entry: TaxPaymentEntry) -> Dict[str, float]:
    return {
        "tax": _d(entry.tax),
        "intr": _d(entry.interest),
        "pen": _d(entry.penalty),
        "fee": _d(entry.fees),
        "oth": _d(entry.others),
    }


def _net_itc(doc: Gstr3bDocument) -> Dict[str, float]:
    """Eligible ITC minus reversed ITC, per head, floored at zero."""
    itc = doc.eligible_itc
    avl = (itc.import_goods, itc.import_services, itc.inward_supplies_reverse_charge,
           itc.inward_supplies, itc.others)
    rev = (doc.itc_reversed.as_per_rule_42_and_43, doc.itc_reversed.others)
    net: Dict[str, float] = {}
    for head in ("igst", "cgst", "sgst", "cess"):
        value = sum((getattr(e, head) for e in avl), ZERO) - sum((getattr(e, head) for e in rev), ZERO)
        net[head] = _d(max(ZERO, value))
    return net


def make_gstr3b_json(doc: Gstr3bDocument) -> Dict[str, Any]:
    """
    Build GSTR-3B JSON from a full return document.

    Args:
        doc: Gstr3bDocument (any status).

    Returns:
        Dict with the taxpayer header and every filled table of the return.
    """
    out = doc.outward_supplies
    inward = doc.inward_supplies
    itc = doc.eligible_itc
    exempt = doc.exempt_nil_non_gst
    paid = doc.tax_paid

    return {
        "gstin": doc.basic_info.gstin,
        "fp": doc.return_period.fp,
        "legal_name": doc.basic_info.legal_name,
        "trade_name": doc.basic_info.trade_name,
        "sup_details": {
            "osup_det": _taxable(out.taxable_outward),
            "osup_zero": _taxable(out.zero_rated),
            "osup_nil_exmp": {"txval": _d(out.nil_rated_exempted.taxable_value)},
            "isup_rev": _taxable(inward.reverse_charge),
            "osup_amd": _taxable(doc.amendment_outward_supplies),
        },
        "inter_sup": {
            "unreg_details": [_taxable(out.inter_state_supplies_to)],
            "comp_details": [_taxable(out.intra_state_supplies_to)],
        },
        "isup_details": {
            "impg": _taxable(inward.import_goods),
            "imps": _taxable(inward.import_services),
            "isd": _taxable(inward.isd_inward),
        },
        "itc_elg": {
            "itc_avl": [
                _tax(itc.import_goods, "IMPG"),
                _tax(itc.import_services, "IMPS"),
                _tax(itc.inward_supplies_reverse_charge, "ISRC"),
                _tax(itc.inward_supplies, "ISD"),
                _tax(itc.others, "OTH"),
            ],
            "itc_rev": [
                _tax(doc.itc_reversed.as_per_rule_42_and_43, "RUL"),
                _tax(doc.itc_reversed.others, "OTH"),
            ],
            "itc_net": _net_itc(doc),
            "itc_inelg": [],
        },
        "inward_sup": {
            "isup_details": [
                {
                    "ty": "GST",
                    "inter": _d(exempt.inter_state_supplies),
                    "intra": _d(exempt.intra_state_supplies),
                },
                {"ty": "NONGST", "inter": 0, "intra": 0},
            ]
        },
        "intr_ltfee": {
            "intr_details": _tax(doc.interest_late_fee),
        },
        "tx_pmt": {
            "igst": _payment(paid.igst),
            "cgst": _payment(paid.cgst),
            "sgst": _payment(paid.sgst),
            "cess": _payment(paid.cess),
        },
        "verification": {
            "date": doc.verification.date,
            "signatory": doc.verification.authorized_signatory_name,
            "designation": doc.verification.designation,
            "place": doc.verification.place,
        },
    }
