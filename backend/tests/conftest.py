"""Pytest fixtures: in-memory stores, fake pricing services, a fixed clock."""

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from riskguard.repositories.memory import in_memory_stores
from riskguard.schemas.customer import Customer, CustomerCreateRequest, InsuranceType
from riskguard.services.premium_service import LocalPricingService, PricingService
from riskguard.services.underwriting_service import UnderwritingWorkflow

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def make_customer(**overrides) -> Customer:
    """A 45-year-old, verified, fully reachable HEALTH applicant (score 40) unless overridden."""
    data = {
        "id": "cust-1",
        "name": "Test Customer",
        "date_of_birth": date(1981, 1, 15),
        "insurance_type": InsuranceType.HEALTH,
        "document_verified": True,
        "email": "test.customer@example.com",
        "phone": "+1-555-0100",
        "address": "1 Main Street",
        "city": "Springfield",
        "state": "IL",
        "zip_code": "62701",
    }
    data.update(overrides)
    return Customer(**data)


def customer_request(**overrides) -> CustomerCreateRequest:
    data = make_customer().model_dump(exclude={"id"})
    data.update(overrides)
    return CustomerCreateRequest(**data)


class RecordingPricingService(PricingService):
    def __init__(self, premium: Decimal = Decimal("512.34")):
        self.premium = premium
        self.calls: list[tuple[Decimal, int]] = []

    async def calculate(self, coverage_amount, risk_score) -> Decimal:
        self.calls.append((Decimal(str(coverage_amount)), risk_score))
        return self.premium


class FailingPricingService(PricingService):
    async def calculate(self, coverage_amount, risk_score) -> Decimal:
        raise RuntimeError("pricing backend exploded")


class SlowPricingService(PricingService):
    async def calculate(self, coverage_amount, risk_score) -> Decimal:
        await asyncio.sleep(5)
        return Decimal("1.00")


@pytest.fixture
def stores():
    return in_memory_stores()


@pytest.fixture
def pricing():
    return RecordingPricingService()


def build_workflow(stores, pricing=None, **kwargs) -> UnderwritingWorkflow:
    return UnderwritingWorkflow(
        stores,
        pricing or LocalPricingService(),
        clock=lambda: NOW,
        **kwargs,
    )


@pytest.fixture
def workflow(stores, pricing):
    return build_workflow(stores, pricing)


@pytest.fixture
def local_workflow(stores):
    return build_workflow(stores)
