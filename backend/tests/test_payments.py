"""Premium payments recorded against issued policies."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from conftest import TODAY, make_customer
from riskguard.errors import NotFoundError, PersistenceError, StateConflictError, ValidationError
from riskguard.schemas.payment import PaymentCreateRequest, PaymentStatus, PaymentUpdateRequest
from riskguard.schemas.underwriting import Policy, PolicyStatus

START = date(2026, 7, 1)
END = date(2027, 6, 30)


async def boom(*args, **kwargs):
    raise RuntimeError("store is down")


async def issue_policy(workflow, stores) -> Policy:
    customer = await stores.customers.create(make_customer())
    assessment = await workflow.submit_assessment(customer.id)
    decision = await workflow.send_to_underwriting(assessment.id)
    result = await workflow.approve(
        decision.id, coverage_amount=Decimal("100000"), start_date=START, end_date=END
    )
    return result.policy


async def test_payment_defaults_to_policy_premium_and_start(workflow, stores):
    policy = await issue_policy(workflow, stores)

    payment = await workflow.record_payment(PaymentCreateRequest(policy_id=policy.id), actor="billing")

    assert payment.amount == policy.premium_amount
    assert payment.status == PaymentStatus.PENDING
    assert payment.due_date == START
    assert payment.payment_date is None and payment.processed_date is None
    assert await workflow.get_payment(payment.id) == payment
    events = await workflow.list_audit_events(payment.id)
    assert [(e.action, e.entity_type, e.actor) for e in events] == [("RECORD_PAYMENT", "PremiumPayment", "billing")]


async def test_paid_on_record_is_stamped_today(workflow, stores):
    policy = await issue_policy(workflow, stores)

    payment = await workflow.record_payment(
        PaymentCreateRequest(policy_id=policy.id, amount=Decimal("100.005"), status=PaymentStatus.PAID)
    )

    assert payment.amount == Decimal("100.01")
    assert payment.payment_date == TODAY
    assert payment.processed_date == TODAY


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
async def test_payment_amount_must_be_positive(workflow, stores, amount):
    policy = await issue_policy(workflow, stores)

    with pytest.raises(ValidationError):
        await workflow.record_payment(PaymentCreateRequest(policy_id=policy.id, amount=amount))
    assert await workflow.list_payments() == []


async def test_payment_requires_an_active_policy(workflow, stores):
    with pytest.raises(NotFoundError):
        await workflow.record_payment(PaymentCreateRequest(policy_id="missing"))

    policy = await issue_policy(workflow, stores)
    stores.policies._items[policy.id] = policy.model_copy(update={"status": PolicyStatus.EXPIRED})

    with pytest.raises(StateConflictError):
        await workflow.record_payment(PaymentCreateRequest(policy_id=policy.id))


async def test_record_rolls_back_when_audit_fails(workflow, stores, monkeypatch):
    policy = await issue_policy(workflow, stores)
    monkeypatch.setattr(stores.audit, "append", boom)

    with pytest.raises(PersistenceError):
        await workflow.record_payment(PaymentCreateRequest(policy_id=policy.id))

    assert await workflow.list_payments() == []


async def test_update_applies_only_sent_fields(workflow, stores):
    policy = await issue_policy(workflow, stores)
    payment = await workflow.record_payment(
        PaymentCreateRequest(policy_id=policy.id, payment_method="CARD", remarks="first instalment")
    )

    failed = await workflow.update_payment(payment.id, PaymentUpdateRequest(status=PaymentStatus.FAILED))
    assert failed.status == PaymentStatus.FAILED
    assert failed.payment_method == "CARD"
    assert failed.remarks == "first instalment"
    assert failed.processed_date is None

    paid = await workflow.update_payment(
        payment.id, PaymentUpdateRequest(status=PaymentStatus.PAID, transaction_id="TXN-9")
    )
    assert paid.processed_date == TODAY
    assert paid.payment_date == TODAY
    assert await workflow.get_payment(payment.id) == paid

    actions = [e.action for e in await workflow.list_audit_events(payment.id)]
    assert actions == ["RECORD_PAYMENT", "UPDATE_PAYMENT", "UPDATE_PAYMENT"]


@pytest.mark.parametrize("final", [PaymentStatus.PAID, PaymentStatus.CANCELLED])
async def test_settled_payments_are_final(workflow, stores, final):
    policy = await issue_policy(workflow, stores)
    payment = await workflow.record_payment(PaymentCreateRequest(policy_id=policy.id))
    await workflow.update_payment(payment.id, PaymentUpdateRequest(status=final))

    with pytest.raises(StateConflictError) as exc_info:
        await workflow.update_payment(payment.id, PaymentUpdateRequest(remarks="late edit"))
    assert exc_info.value.details["current_status"] == final.value


async def test_update_is_reverted_when_audit_fails(workflow, stores, monkeypatch):
    policy = await issue_policy(workflow, stores)
    payment = await workflow.record_payment(PaymentCreateRequest(policy_id=policy.id))
    monkeypatch.setattr(stores.audit, "append", boom)

    with pytest.raises(PersistenceError):
        await workflow.update_payment(payment.id, PaymentUpdateRequest(status=PaymentStatus.PAID))

    assert await workflow.get_payment(payment.id) == payment


async def test_concurrent_settlements_have_one_winner(workflow, stores):
    policy = await issue_policy(workflow, stores)
    payment = await workflow.record_payment(PaymentCreateRequest(policy_id=policy.id))

    results = await asyncio.gather(
        workflow.update_payment(payment.id, PaymentUpdateRequest(status=PaymentStatus.PAID)),
        workflow.update_payment(payment.id, PaymentUpdateRequest(status=PaymentStatus.CANCELLED)),
        return_exceptions=True,
    )

    assert sum(isinstance(r, StateConflictError) for r in results) == 1
    assert (await workflow.get_payment(payment.id)).status in (PaymentStatus.PAID, PaymentStatus.CANCELLED)


async def test_list_payments_filters(workflow, stores):
    policy = await issue_policy(workflow, stores)
    first = await workflow.record_payment(PaymentCreateRequest(policy_id=policy.id))
    second = await workflow.record_payment(PaymentCreateRequest(policy_id=policy.id, status=PaymentStatus.PAID))

    assert [p.id for p in await workflow.list_payments(policy_id=policy.id)] == [first.id, second.id]
    assert [p.id for p in await workflow.list_payments(status=PaymentStatus.PAID)] == [second.id]
    assert await workflow.list_payments(policy_id="other") == []

    with pytest.raises(NotFoundError):
        await workflow.update_payment("missing", PaymentUpdateRequest(remarks="x"))
