"""Beanie-backed stores against an in-process Mongo double."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from beanie import init_beanie
from mongomock_motor import AsyncMongoMockClient

from conftest import NOW, RecordingPricingService, build_workflow, customer_request
from riskguard.db.session import DOCUMENT_MODELS
from riskguard.errors import StateConflictError
from riskguard.repositories.mongo import mongo_stores
from riskguard.schemas.payment import PaymentCreateRequest, PaymentStatus, PaymentUpdateRequest, PremiumPayment
from riskguard.schemas.underwriting import (
    ApprovedDecision,
    AssessmentStatus,
    AuditEvent,
    DecisionStatus,
    PendingDecision,
    Policy,
    PolicyStatus,
)
from riskguard.utils.ids import new_id

START = date(2026, 7, 1)
END = date(2027, 6, 30)


@pytest.fixture
async def mongo():
    client = AsyncMongoMockClient()
    await init_beanie(database=client["riskguard_test"], document_models=DOCUMENT_MODELS)
    return mongo_stores()


def pending(assessment_id: str = "") -> PendingDecision:
    return PendingDecision(
        id=new_id(),
        customer_id=new_id(),
        assessment_id=assessment_id or new_id(),
        sent_to_underwriting_date=NOW,
    )


async def test_decision_cas_only_matches_the_expected_status(mongo):
    decision = await mongo.decisions.create(pending())
    approved = decision.approve(
        policy_id=new_id(), reason="ok", underwriter_notes="", decided_at=NOW, decided_by="bob"
    )

    assert await mongo.decisions.replace_if_status(decision.id, DecisionStatus.ON_HOLD, approved) is None
    assert (await mongo.decisions.get(decision.id)).status == DecisionStatus.PENDING

    stored = await mongo.decisions.replace_if_status(decision.id, DecisionStatus.PENDING, approved)
    assert isinstance(stored, ApprovedDecision)
    assert stored.approval_date == NOW.date()
    assert stored.policy_id == approved.policy_id

    assert await mongo.decisions.replace_if_status(decision.id, DecisionStatus.PENDING, approved) is None


async def test_reverting_a_decision_clears_variant_fields(mongo):
    decision = await mongo.decisions.create(pending())
    approved = decision.approve(
        policy_id=new_id(), reason="ok", underwriter_notes="", decided_at=NOW, decided_by="bob"
    )
    await mongo.decisions.replace_if_status(decision.id, DecisionStatus.PENDING, approved)

    restored = await mongo.decisions.replace_if_status(decision.id, DecisionStatus.APPROVED, decision)

    assert isinstance(restored, PendingDecision)
    stamp = {"sent_to_underwriting_date"}
    assert restored.model_dump(exclude=stamp) == decision.model_dump(exclude=stamp)


async def test_second_decision_for_an_assessment_is_a_conflict(mongo):
    first = await mongo.decisions.create(pending())

    with pytest.raises(StateConflictError):
        await mongo.decisions.create(pending(first.assessment_id))
    assert len(await mongo.decisions.list()) == 1


async def test_malformed_ids_are_misses(mongo):
    assert await mongo.customers.get("not-an-id") is None
    assert await mongo.decisions.get("not-an-id") is None
    assert await mongo.decisions.replace_if_status("not-an-id", DecisionStatus.PENDING, pending()) is None
    assert await mongo.decisions.delete("not-an-id") is False
    assert await mongo.policies.delete("not-an-id") is False
    assert await mongo.payments.get("not-an-id") is None
    assert await mongo.assessments.update_status_if(
        "not-an-id", AssessmentStatus.ACTIVE, AssessmentStatus.SENT_TO_UNDERWRITING
    ) is None


async def test_decision_delete_reports_whether_it_removed_anything(mongo):
    decision = await mongo.decisions.create(pending())

    assert await mongo.decisions.delete(decision.id) is True
    assert await mongo.decisions.delete(decision.id) is False
    assert await mongo.decisions.get(decision.id) is None


async def test_policy_dates_and_money_round_trip(mongo):
    policy = Policy(
        id=new_id(),
        customer_id=new_id(),
        decision_id=new_id(),
        policy_number="POL-20260601-ABCDEF12",
        coverage_amount=Decimal("100000.00"),
        premium_amount=Decimal("512.35"),
        start_date=START,
        end_date=END,
        status=PolicyStatus.ACTIVE,
        issue_date=NOW.date(),
    )
    await mongo.policies.create(policy)

    assert await mongo.policies.get(policy.id) == policy
    assert await mongo.policies.list(customer_id=policy.customer_id) == [policy]
    assert await mongo.policies.list(customer_id="someone-else") == []


async def test_customer_birth_date_round_trips(mongo):
    workflow = build_workflow(mongo, RecordingPricingService())
    customer = await workflow.create_customer(customer_request())

    stored = await mongo.customers.get(customer.id)

    assert stored.date_of_birth == date(1981, 1, 15)
    assert stored == customer


async def test_assessment_status_cas(mongo):
    workflow = build_workflow(mongo, RecordingPricingService())
    customer = await workflow.create_customer(customer_request())
    assessment = await workflow.submit_assessment(customer.id)

    flipped = await mongo.assessments.update_status_if(
        assessment.id, AssessmentStatus.ACTIVE, AssessmentStatus.SENT_TO_UNDERWRITING
    )
    assert flipped.status == AssessmentStatus.SENT_TO_UNDERWRITING
    assert await mongo.assessments.update_status_if(
        assessment.id, AssessmentStatus.ACTIVE, AssessmentStatus.SENT_TO_UNDERWRITING
    ) is None
    assert [a.id for a in await mongo.assessments.list(customer_id=customer.id)] == [assessment.id]


async def test_audit_filters_and_ordering(mongo):
    later = datetime(2026, 6, 2, tzinfo=timezone.utc)
    entity = new_id()
    for event_id, entity_type, stamp in [
        (new_id(), "UnderwritingDecision", later),
        (new_id(), "UnderwritingDecision", NOW),
        (new_id(), "PremiumPayment", NOW),
    ]:
        await mongo.audit.append(
            AuditEvent(
                id=event_id,
                action="TEST",
                entity_type=entity_type,
                entity_id=entity if entity_type == "UnderwritingDecision" else new_id(),
                actor="System",
                timestamp=stamp,
            )
        )

    decisions = await mongo.audit.list(entity_type="underwritingdecision")
    assert [e.timestamp.day for e in decisions] == [1, 2]
    assert len(await mongo.audit.list(entity_id=entity)) == 2
    assert await mongo.audit.list(entity_id=entity, entity_type="PremiumPayment") == []
    assert await mongo.audit.list(entity_type="Underwriting.*") == []
    assert len(await mongo.audit.list()) == 3


async def test_payment_cas_and_filters(mongo):
    payment = PremiumPayment(
        id=new_id(),
        policy_id=new_id(),
        amount=Decimal("512.35"),
        due_date=START,
    )
    await mongo.payments.create(payment)
    assert await mongo.payments.get(payment.id) == payment

    paid = payment.model_copy(update={"status": PaymentStatus.PAID, "processed_date": NOW.date()})
    assert await mongo.payments.replace_if_status(payment.id, PaymentStatus.FAILED, paid) is None
    assert await mongo.payments.replace_if_status(payment.id, PaymentStatus.PENDING, paid) == paid

    assert await mongo.payments.list(policy_id=payment.policy_id, status=PaymentStatus.PAID) == [paid]
    assert await mongo.payments.list(status=PaymentStatus.PENDING) == []
    assert await mongo.payments.delete(payment.id) is True
    assert await mongo.payments.delete(payment.id) is False


async def test_workflow_over_mongo_stores(mongo):
    workflow = build_workflow(mongo, RecordingPricingService())
    customer = await workflow.create_customer(customer_request())
    assessment = await workflow.submit_assessment(customer.id)
    decision = await workflow.send_to_underwriting(assessment.id)

    with pytest.raises(StateConflictError):
        await workflow.send_to_underwriting(assessment.id)

    result = await workflow.approve(
        decision.id, coverage_amount=Decimal("100000"), start_date=START, end_date=END
    )
    assert result.policy.premium_amount == Decimal("512.34")
    assert await workflow.get_policy(result.policy.id) == result.policy
    assert (await workflow.get_decision(decision.id)).status == DecisionStatus.APPROVED

    payment = await workflow.record_payment(PaymentCreateRequest(policy_id=result.policy.id))
    settled = await workflow.update_payment(payment.id, PaymentUpdateRequest(status=PaymentStatus.PAID))
    assert settled.processed_date == NOW.date()
    assert await workflow.list_payments(policy_id=result.policy.id) == [settled]

    actions = [e.action for e in await workflow.list_audit_events(entity_type="UnderwritingDecision")]
    assert actions == ["SUBMIT_ASSESSMENT", "APPROVE_DECISION"]
