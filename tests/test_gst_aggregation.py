"""Tests for GSTR-3B totals computation."""

from decimal import Decimal

import pytest

from app.domain.models.gst import (
    EligibleItc,
    Gstr3bDocument,
    InwardSupplies,
    ItcReversed,
    OutwardSupplies,
    TaxableEntry,
    TaxEntry,
)
from app.domain.services.gst_aggregation import compute_totals, format_amount


def _doc(period, **sections) -> Gstr3bDocument:
    return Gstr3bDocument(return_period=period, **sections)


class TestScenarios:

    def test_outward_igst_only(self, period):
        """1 lakh taxable outward at 18% IGST, nothing else."""
        doc = _doc(period, outward_supplies=OutwardSupplies(
            taxable_outward=TaxableEntry(taxable_value=100000, igst=18000),
        ))
        totals = compute_totals(doc)

        assert totals.total_outward_tax == Decimal("18000")
        assert totals.total_inward_tax == Decimal("0")
        assert totals.total_eligible_itc == Decimal("0")
        assert totals.total_itc_reversed == Decimal("0")
        assert totals.net_tax_liability == Decimal("18000")

    def test_itc_exceeding_output_clamps_to_zero(self, period):
        doc = _doc(
            period,
            outward_supplies=OutwardSupplies(
                taxable_outward=TaxableEntry(taxable_value=100000, igst=18000),
            ),
            eligible_itc=EligibleItc(
                import_goods=TaxEntry(igst=12000),
                others=TaxEntry(cgst=4000, sgst=4000),
            ),
        )
        totals = compute_totals(doc)

        assert totals.total_eligible_itc == Decimal("20000")
        assert totals.net_tax_liability == Decimal("0")


class TestFormulas:

    @pytest.fixture
    def full_doc(self, period) -> Gstr3bDocument:
        return _doc(
            period,
            outward_supplies=OutwardSupplies(
                taxable_outward=TaxableEntry(taxable_value=50000, igst=1000, cgst=2000, sgst=2000, cess=300),
                zero_rated=TaxableEntry(taxable_value=10000, igst=500, cess=20),
                # not part of outward tax
                nil_rated_exempted=TaxableEntry(taxable_value=9999, igst=999),
                intra_state_supplies_to=TaxableEntry(igst=777),
                inter_state_supplies_to=TaxableEntry(igst=888),
            ),
            inward_supplies=InwardSupplies(
                reverse_charge=TaxableEntry(taxable_value=4000, igst=100, cgst=50, sgst=50, cess=40),
                import_goods=TaxableEntry(igst=5555),
            ),
            eligible_itc=EligibleItc(
                import_goods=TaxEntry(igst=100, cess=10),
                import_services=TaxEntry(igst=200),
                inward_supplies=TaxEntry(cgst=150, sgst=150),
                inward_supplies_reverse_charge=TaxEntry(igst=100),
                others=TaxEntry(cgst=25, sgst=25),
            ),
            itc_reversed=ItcReversed(
                as_per_rule_42_and_43=TaxEntry(cgst=40, sgst=40),
                others=TaxEntry(igst=20, cess=5),
            ),
        )

    def test_section_totals(self, full_doc):
        totals = compute_totals(full_doc)

        assert totals.total_outward_tax == Decimal("5500")  # 1000+2000+2000+500
        assert totals.total_inward_tax == Decimal("200")
        assert totals.total_eligible_itc == Decimal("760")
        assert totals.total_itc_reversed == Decimal("105")

    def test_head_totals(self, full_doc):
        totals = compute_totals(full_doc)

        assert totals.total_igst == Decimal("1600")
        assert totals.total_cgst == Decimal("2050")
        assert totals.total_sgst == Decimal("2050")

    def test_reverse_charge_cess_excluded_from_cess_total(self, full_doc):
        assert compute_totals(full_doc).total_cess == Decimal("320")

    def test_net_liability(self, full_doc):
        # 5500 + 200 - 760 + 105
        assert compute_totals(full_doc).net_tax_liability == Decimal("5045")

    def test_reversed_itc_adds_back(self, period):
        doc = _doc(
            period,
            outward_supplies=OutwardSupplies(taxable_outward=TaxableEntry(cgst=500, sgst=500)),
            eligible_itc=EligibleItc(others=TaxEntry(cgst=400, sgst=400)),
            itc_reversed=ItcReversed(others=TaxEntry(cgst=100)),
        )
        assert compute_totals(doc).net_tax_liability == Decimal("300")

    def test_decimal_precision_is_exact(self, period):
        doc = _doc(period, outward_supplies=OutwardSupplies(
            taxable_outward=TaxableEntry(igst="0.10", cgst="0.20"),
        ))
        assert compute_totals(doc).total_outward_tax == Decimal("0.30")


class TestProperties:

    def test_empty_document_is_all_zero(self, empty_doc):
        totals = compute_totals(empty_doc)
        assert all(v == Decimal("0") for v in totals.model_dump().values())

    def test_idempotent(self, complete_doc):
        first = compute_totals(complete_doc)
        second = compute_totals(complete_doc)
        assert first == second
        assert first.model_dump_json() == second.model_dump_json()

    def test_does_not_modify_document(self, complete_doc):
        before = complete_doc.model_dump()
        compute_totals(complete_doc)
        assert complete_doc.model_dump() == before

    @pytest.mark.parametrize("itc", ["0", "17999.99", "18000", "18000.01", "1000000"])
    def test_net_liability_never_negative(self, period, itc):
        doc = _doc(
            period,
            outward_supplies=OutwardSupplies(taxable_outward=TaxableEntry(igst=18000)),
            eligible_itc=EligibleItc(others=TaxEntry(igst=itc)),
        )
        assert compute_totals(doc).net_tax_liability >= Decimal("0")


class TestFormatAmount:

    def test_two_decimals(self):
        assert format_amount(Decimal("18000")) == "18000.00"
        assert format_amount(Decimal("5045.5")) == "5045.50"
