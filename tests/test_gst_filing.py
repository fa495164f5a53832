# tests/test_gst_filing.py
"""
Tests for GST filing infrastructure:
- gst_export.py (GSTR-3B JSON builder)
- gst_filing_client.py (local and HTTP submission backends)
"""

import random
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.domain.models.gst import (
    EligibleItc,
    ExemptNilNonGst,
    InwardSupplies,
    ItcReversed,
    TaxableEntry,
    TaxEntry,
    TaxPaid,
    TaxPaymentEntry,
)
from app.domain.services.gst_export import make_gstr3b_json
from app.infrastructure.external.gst_filing_client import (
    HttpSubmissionBackend,
    LocalSubmissionBackend,
    SubmissionError,
    SubmissionReceipt,
    build_submission_backend,
)

FILING_TIME = datetime(2025, 2, 18, 10, 30, tzinfo=timezone.utc)


# ============================================================
# gst_export.py - make_gstr3b_json
# ============================================================

class TestMakeGstr3bJson:
    """Tests for GSTR-3B JSON builder."""

    def test_header(self, complete_doc):
        result = make_gstr3b_json(complete_doc)

        assert result["gstin"] == "36AABCU9603R1ZM"
        assert result["fp"] == "012025"
        assert result["legal_name"] == "ABC Traders Pvt Ltd"
        assert result["trade_name"] == "ABC Traders"

    def test_outward_supplies(self, complete_doc):
        result = make_gstr3b_json(complete_doc)

        assert result["sup_details"]["osup_det"]["txval"] == 100000.0
        assert result["sup_details"]["osup_det"]["igst"] == 18000.0
        assert result["sup_details"]["osup_zero"]["igst"] == 0.0

    def test_reverse_charge_and_itc(self, complete_doc):
        doc = complete_doc.model_copy(update={
            "inward_supplies": InwardSupplies(
                reverse_charge=TaxableEntry(taxable_value=10000, igst=1800),
            ),
            "eligible_itc": EligibleItc(
                inward_supplies_reverse_charge=TaxEntry(igst=1800),
                others=TaxEntry(cgst=500, sgst=500),
            ),
            "itc_reversed": ItcReversed(others=TaxEntry(cgst=700)),
        })
        result = make_gstr3b_json(doc)

        assert result["sup_details"]["isup_rev"]["igst"] == 1800.0
        avl = {row["ty"]: row for row in result["itc_elg"]["itc_avl"]}
        assert avl["ISRC"]["igst"] == 1800.0
        assert avl["OTH"]["cgst"] == 500.0
        assert result["itc_elg"]["itc_net"]["igst"] == 1800.0
        # reversal larger than availed ITC floors at zero
        assert result["itc_elg"]["itc_net"]["cgst"] == 0.0
        assert result["itc_elg"]["itc_net"]["sgst"] == 500.0

    def test_exempt_and_payments(self, complete_doc):
        doc = complete_doc.model_copy(update={
            "exempt_nil_non_gst": ExemptNilNonGst(inter_state_supplies=1200, intra_state_supplies=800),
            "tax_paid": TaxPaid(igst=TaxPaymentEntry(tax=18000, interest=Decimal("12.50"))),
        })
        result = make_gstr3b_json(doc)

        gst_row = result["inward_sup"]["isup_details"][0]
        assert gst_row == {"ty": "GST", "inter": 1200.0, "intra": 800.0}
        assert result["tx_pmt"]["igst"]["tax"] == 18000.0
        assert result["tx_pmt"]["igst"]["intr"] == 12.5
        assert result["tx_pmt"]["cess"] == {"tax": 0.0, "intr": 0.0, "pen": 0.0, "fee": 0.0, "oth": 0.0}

    def test_has_required_sections(self, empty_doc):
        result = make_gstr3b_json(empty_doc)
        for key in ("sup_details", "inter_sup", "isup_details", "itc_elg",
                    "inward_sup", "intr_ltfee", "tx_pmt", "verification"):
            assert key in result

    def test_verification_block(self, complete_doc):
        result = make_gstr3b_json(complete_doc)
        assert result["verification"] == {
            "date": "2025-02-10",
            "signatory": "Ravi Kumar",
            "designation": "Director",
            "place": "Hyderabad",
        }


# ============================================================
# gst_filing_client.py - LocalSubmissionBackend
# ============================================================

class TestLocalSubmissionBackend:

    def test_issues_arn_for_filing_date(self, event_loop, complete_doc, local_backend):
        receipt = event_loop.run_until_complete(
            local_backend.submit(complete_doc, make_gstr3b_json(complete_doc))
        )
        assert receipt.arn.startswith("AB20250218")
        assert len(receipt.arn) == 16
        assert receipt.filed_at == FILING_TIME
        assert receipt.arn in local_backend.issued

    def test_never_repeats(self, event_loop, complete_doc, local_backend):
        arns = {
            event_loop.run_until_complete(local_backend.submit(complete_doc, {})).arn
            for _ in range(50)
        }
        assert len(arns) == 50

    def test_issued_set_pruned_on_new_day(self, event_loop, complete_doc):
        times = iter([
            datetime(2025, 2, 18, 23, 59, tzinfo=timezone.utc),
            datetime(2025, 2, 19, 0, 1, tzinfo=timezone.utc),
        ])
        backend = LocalSubmissionBackend(clock=lambda: next(times), rng=random.Random(5))
        first = event_loop.run_until_complete(backend.submit(complete_doc, {}))
        second = event_loop.run_until_complete(backend.submit(complete_doc, {}))

        assert first.arn.startswith("AB20250218")
        assert second.arn.startswith("AB20250219")
        assert backend.issued == frozenset({second.arn})

    def test_exhaustion_becomes_submission_error(self, event_loop, complete_doc):
        rng = MagicMock()
        rng.randint.return_value = 424242
        backend = LocalSubmissionBackend(clock=lambda: FILING_TIME, rng=rng, max_attempts=2)
        event_loop.run_until_complete(backend.submit(complete_doc, {}))
        with pytest.raises(SubmissionError):
            event_loop.run_until_complete(backend.submit(complete_doc, {}))


# ============================================================
# gst_filing_client.py - HttpSubmissionBackend
# ============================================================

class TestHttpSubmissionBackend:

    def test_headers_with_api_key(self):
        backend = HttpSubmissionBackend("https://filing.example/", api_key="secret")
        headers = backend._headers()
        assert headers["x-api-key"] == "secret"
        assert backend.base == "https://filing.example"

    def test_headers_without_api_key(self):
        backend = HttpSubmissionBackend("https://filing.example")
        assert "x-api-key" not in backend._headers()

    def test_submit_parses_receipt(self, event_loop, complete_doc):
        backend = HttpSubmissionBackend("https://filing.example")
        with patch.object(backend, "_post", new=AsyncMock(return_value={
            "arn": "AB20250218123456", "filed_at": "2025-02-18T10:30:00+00:00",
        })) as post:
            receipt = event_loop.run_until_complete(backend.submit(complete_doc, {"gstin": "x"}))

        post.assert_awaited_once_with("/gstr3b/file", {"gstin": "x"})
        assert receipt == SubmissionReceipt(arn="AB20250218123456", filed_at=FILING_TIME)

    def test_submit_accepts_wrapped_body(self, event_loop, complete_doc):
        backend = HttpSubmissionBackend("https://filing.example")
        with patch.object(backend, "_post", new=AsyncMock(return_value={
            "status_cd": "1", "data": {"ack_num": "AB20250218654321"},
        })):
            receipt = event_loop.run_until_complete(backend.submit(complete_doc, {}))
        assert receipt.arn == "AB20250218654321"
        assert receipt.filed_at.tzinfo is not None

    def test_missing_arn(self, event_loop, complete_doc):
        backend = HttpSubmissionBackend("https://filing.example")
        with patch.object(backend, "_post", new=AsyncMock(return_value={"status": "queued"})):
            with pytest.raises(SubmissionError):
                event_loop.run_until_complete(backend.submit(complete_doc, {}))

    def test_filed_at_with_z_suffix(self, event_loop, complete_doc):
        backend = HttpSubmissionBackend("https://filing.example")
        with patch.object(backend, "_post", new=AsyncMock(return_value={
            "arn": "AB20250218123456", "filed_at": "2025-02-18T10:30:00Z",
        })):
            receipt = event_loop.run_until_complete(backend.submit(complete_doc, {}))
        assert receipt.filed_at == FILING_TIME

    def test_bad_filed_at(self, event_loop, complete_doc):
        backend = HttpSubmissionBackend("https://filing.example")
        with patch.object(backend, "_post", new=AsyncMock(return_value={
            "arn": "AB20250218123456", "filed_at": "yesterday",
        })):
            with pytest.raises(SubmissionError):
                event_loop.run_until_complete(backend.submit(complete_doc, {}))

    def test_http_status_error(self, event_loop, complete_doc):
        request = httpx.Request("POST", "https://filing.example/gstr3b/file")
        response = httpx.Response(422, json={"error": "invalid gstin"}, request=request)
        backend = HttpSubmissionBackend("https://filing.example")

        with patch("httpx.AsyncClient.post", new=AsyncMock(return_value=response)):
            with pytest.raises(SubmissionError) as exc_info:
                event_loop.run_until_complete(backend.submit(complete_doc, {}))

        assert exc_info.value.status_code == 422
        assert exc_info.value.response == {"error": "invalid gstin"}

    def test_timeout(self, event_loop, complete_doc):
        backend = HttpSubmissionBackend("https://filing.example", timeout=0.1)
        with patch("httpx.AsyncClient.post", new=AsyncMock(side_effect=httpx.ReadTimeout("slow"))):
            with pytest.raises(SubmissionError, match="timeout"):
                event_loop.run_until_complete(backend.submit(complete_doc, {}))

    def test_connection_error(self, event_loop, complete_doc):
        backend = HttpSubmissionBackend("https://filing.example")
        with patch("httpx.AsyncClient.post", new=AsyncMock(side_effect=httpx.ConnectError("refused"))):
            with pytest.raises(SubmissionError, match="unreachable"):
                event_loop.run_until_complete(backend.submit(complete_doc, {}))

    def test_submission_error_defaults(self):
        err = SubmissionError("boom")
        assert err.status_code == 0
        assert err.response == {}


class TestBuildSubmissionBackend:

    def test_local(self):
        settings = MagicMock(FILING_BACKEND="local", ARN_MAX_ATTEMPTS=5)
        assert isinstance(build_submission_backend(settings), LocalSubmissionBackend)

    def test_http(self):
        settings = MagicMock(
            FILING_BACKEND="HTTP",
            GST_FILING_BASE_URL="https://filing.example",
            GST_FILING_API_KEY="",
            GST_FILING_TIMEOUT=5.0,
        )
        assert isinstance(build_submission_backend(settings), HttpSubmissionBackend)

    def test_unknown(self):
        with pytest.raises(ValueError):
            build_submission_backend(MagicMock(FILING_BACKEND="fax"))


def test_receipt_is_hashable():
    r = SubmissionReceipt(arn="AB20250218123456", filed_at=datetime(2025, 2, 18, tzinfo=timezone.utc))
    assert r in {r}
