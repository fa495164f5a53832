# app/domain/services/gst_aggregation.py
"""
GSTR-3B totals.

Pure computation over a Gstr3bDocument; no I/O and no state, so it can be
called after every edit.

    outward tax = IGST+CGST+SGST of taxable outward + zero rated
    inward tax  = IGST+CGST+SGST of reverse-charge inward
    net payable = max(0, outward + inward - eligible ITC + reversed ITC)
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from app.domain.models.gst import ZERO, Gstr3bDocument, Gstr3bTotals, TaxEntry


def _gst(entry: TaxEntry) -> Decimal:
    """IGST + CGST + SGST (cess excluded)."""
    return entry.igst + entry.cgst + entry.sgst


def _gst_with_cess(entry: TaxEntry) -> Decimal:
    return entry.igst + entry.cgst + entry.sgst + entry.cess


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def compute_totals(doc: Gstr3bDocument) -> Gstr3bTotals:
    """Compute the statutory totals for ``doc``."""
    out = doc.outward_supplies
    liable_outward = (out.taxable_outward, out.zero_rated)
    rcm = doc.inward_supplies.reverse_charge
    liable = liable_outward + (rcm,)

    itc = doc.eligible_itc
    eligible = (
        itc.import_goods,
        itc.import_services,
        itc.inward_supplies,
        itc.inward_supplies_reverse_charge,
        itc.others,
    )
    reversed_ = (doc.itc_reversed.as_per_rule_42_and_43, doc.itc_reversed.others)

    total_outward_tax = _sum(_gst(e) for e in liable_outward)
    total_inward_tax = _gst(rcm)
    total_eligible_itc = _sum(_gst_with_cess(e) for e in eligible)
    total_itc_reversed = _sum(_gst_with_cess(e) for e in reversed_)

    net = total_outward_tax + total_inward_tax - total_eligible_itc + total_itc_reversed

    return Gstr3bTotals(
        total_outward_tax=total_outward_tax,
        total_inward_tax=total_inward_tax,
        total_eligible_itc=total_eligible_itc,
        total_itc_reversed=total_itc_reversed,
        total_igst=_sum(e.igst for e in liable),
        total_cgst=_sum(e.cgst for e in liable),
        total_sgst=_sum(e.sgst for e in liable),
        # Reverse-charge cess is not part of the cess total.
        total_cess=_sum(e.cess for e in liable_outward),
        net_tax_liability=max(ZERO, net),
    )


def format_amount(amount: Decimal) -> str:
    """Render an amount with two decimals, e.g. ``18000.00``."""
    return f"{amount:.2f}"
