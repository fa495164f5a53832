"""Shared test fixtures for the GSTR-3B filing test suite."""

import asyncio
import random
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from app.domain.models.gst import (
    BasicInfo,
    Gstr3bDocument,
    OutwardSupplies,
    ReturnPeriod,
    TaxableEntry,
    Verification,
)
from app.infrastructure.cache.draft_store import DraftStore, InMemoryKeyValueBackend
from app.infrastructure.external.gst_filing_client import LocalSubmissionBackend


FILING_TIME = datetime(2025, 2, 18, 10, 30, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def event_loop():
    """Use a single event loop for the entire test session."""
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture
def period() -> ReturnPeriod:
    return ReturnPeriod(month="01", year="2025")


@pytest.fixture
def empty_doc(period) -> Gstr3bDocument:
    return Gstr3bDocument.empty(period, date(2025, 2, 10))


@pytest.fixture
def complete_doc(period) -> Gstr3bDocument:
    """A return with every mandatory field filled and 18% IGST on 1 lakh outward."""
    return Gstr3bDocument(
        return_period=period,
        basic_info=BasicInfo(
            gstin="36AABCU9603R1ZM",
            legal_name="ABC Traders Pvt Ltd",
            trade_name="ABC Traders",
        ),
        outward_supplies=OutwardSupplies(
            taxable_outward=TaxableEntry(
                taxable_value=Decimal("100000"),
                igst=Decimal("18000"),
            ),
        ),
        verification=Verification(
            date="2025-02-10",
            authorized_signatory_name="Ravi Kumar",
            designation="Director",
            place="Hyderabad",
        ),
    )


@pytest.fixture
def draft_store() -> DraftStore:
    return DraftStore(InMemoryKeyValueBackend())


@pytest.fixture
def local_backend() -> LocalSubmissionBackend:
    return LocalSubmissionBackend(clock=lambda: FILING_TIME, rng=random.Random(42))
