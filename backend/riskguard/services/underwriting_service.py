"""
UnderwritingWorkflow
====================
Decision state machine:

    submit ──► PENDING ──approve──► APPROVED (+ Policy)
                  │  └──decline──► DECLINED
                  └────hold─────► ON_HOLD ──reopen──► PENDING   (ON_HOLD_POLICY=reopenable)

  - every transition except submit/delete is a compare-and-set on the stored
    status, serialised per entity by an asyncio.Lock
  - each unit of work registers a compensation before the write it undoes, so
    a write that lands but times out is still reverted; any failure (pricing,
    persistence, audit, cancellation) undoes them in reverse before re-raising
  - compensations are idempotent: undoing a write that never happened is a no-op
  - store and pricing calls run under a timeout and surface as
    PersistenceError / PricingError
"""

import asyncio
import logging
import weakref
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from riskguard.errors import (
    NotFoundError,
    PersistenceError,
    PricingError,
    StateConflictError,
    UnderwritingError,
    ValidationError,
)
from riskguard.repositories.base import Stores
from riskguard.schemas.customer import Customer, CustomerCreateRequest
from riskguard.schemas.payment import (
    FINAL_PAYMENT_STATUSES,
    PaymentCreateRequest,
    PaymentStatus,
    PaymentUpdateRequest,
    PremiumPayment,
)
from riskguard.schemas.underwriting import (
    ApprovalResponse,
    AssessmentResult,
    AssessmentStatus,
    AuditEvent,
    DecisionStatus,
    PendingDecision,
    Policy,
    PolicyStatus,
    PremiumQuote,
    RiskAssessment,
    UnderwritingDecision,
)
from riskguard.services.audit_service import AuditRecorder
from riskguard.services.premium_service import PricingService, normalize_premium
from riskguard.services.risk_scoring_service import build_explanation, compute_risk_score
from riskguard.utils.ids import new_id

logger = logging.getLogger(__name__)

# Used to price an approval whose assessment has since disappeared
FALLBACK_RISK_SCORE = 50

DECISION_ENTITY = "UnderwritingDecision"
PAYMENT_ENTITY = "PremiumPayment"

Compensation = tuple[str, Callable[[], Awaitable[Any]]]


class OnHoldPolicy(str, Enum):
    TERMINAL = "terminal"
    REOPENABLE = "reopenable"


def _positive_amount(value: Any, field: str, required: bool = True) -> Optional[Decimal]:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required", field=field)
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number, got {value!r}", field=field)
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field} must be greater than 0, got {value!r}", field=field)
    return amount


def _policy_number(policy_id: str, issued: date) -> str:
    return f"POL-{issued:%Y%m%d}-{policy_id[-8:].upper()}"


class UnderwritingWorkflow:
    def __init__(
        self,
        stores: Stores,
        pricing: PricingService,
        *,
        on_hold_policy: OnHoldPolicy | str = OnHoldPolicy.TERMINAL,
        store_timeout: float = 5.0,
        pricing_timeout: float = 5.0,
        default_actor: str = "System",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.stores = stores
        self.pricing = pricing
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.audit = AuditRecorder(stores.audit, clock=self._clock)
        self.on_hold_policy = OnHoldPolicy(on_hold_policy)
        self.store_timeout = store_timeout
        self.pricing_timeout = pricing_timeout
        self.default_actor = default_actor
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _lock(self, kind: str, entity_id: str) -> asyncio.Lock:
        key = f"{kind}:{entity_id}"
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def _actor(self, actor: Optional[str]) -> str:
        return actor or self.default_actor

    async def _store_call(self, what: str, call: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(call, timeout=self.store_timeout)
        except UnderwritingError:
            raise
        except asyncio.TimeoutError as e:
            logger.error("Store call timed out after %ss: %s", self.store_timeout, what)
            raise PersistenceError(f"Timed out trying to {what}") from e
        except Exception as e:
            logger.error("Store call failed: %s: %s", what, e, exc_info=True)
            raise PersistenceError(f"Failed to {what}: {e}") from e

    async def _price(self, coverage_amount: Decimal, risk_score: int) -> Decimal:
        """Price through the configured service; the result is re-validated whatever the service."""
        try:
            premium = await asyncio.wait_for(
                self.pricing.calculate(coverage_amount, risk_score),
                timeout=self.pricing_timeout,
            )
        except UnderwritingError:
            raise
        except asyncio.TimeoutError as e:
            logger.error("Pricing timed out after %ss", self.pricing_timeout)
            raise PricingError(f"Pricing service timed out after {self.pricing_timeout}s") from e
        except Exception as e:
            logger.error("Pricing failed: %s", e, exc_info=True)
            raise PricingError(f"Pricing failed: {e}") from e
        return normalize_premium(premium)

    async def _rollback(self, compensations: list[Compensation]) -> None:
        for what, undo in reversed(compensations):
            try:
                await self._store_call(what, undo())
                logger.warning("Rolled back: %s", what)
            except UnderwritingError:
                logger.exception("Rollback step failed, manual repair needed: %s", what)

    async def _require_decision(self, decision_id: str) -> UnderwritingDecision:
        decision = await self._store_call("load decision", self.stores.decisions.get(decision_id))
        if decision is None:
            raise NotFoundError(DECISION_ENTITY, decision_id)
        return decision

    async def _restore_decision(self, decision: UnderwritingDecision) -> None:
        if await self.stores.decisions.get(decision.id) is None:
            await self.stores.decisions.create(decision)

    @staticmethod
    def _ensure_status(decision: UnderwritingDecision, expected: DecisionStatus, action: str) -> None:
        if decision.status != expected:
            logger.warning(
                "Rejected %s on decision %s: status is %s, expected %s",
                action, decision.id, decision.status, expected.value,
            )
            raise StateConflictError(
                f"Cannot {action} decision {decision.id!r}: status is {decision.status}",
                current_status=str(decision.status),
                expected_status=expected.value,
            )

    # ------------------------------------------------------------------
    # Customers (plumbing)
    # ------------------------------------------------------------------

    async def create_customer(self, request: CustomerCreateRequest) -> Customer:
        customer = Customer(id=new_id(), **request.model_dump())
        return await self._store_call("create customer", self.stores.customers.create(customer))

    async def get_customer(self, customer_id: str) -> Customer:
        customer = await self._store_call("load customer", self.stores.customers.get(customer_id))
        if customer is None:
            raise NotFoundError("Customer", customer_id)
        return customer

    async def list_customers(self) -> list[Customer]:
        return await self._store_call("list customers", self.stores.customers.list())

    # ------------------------------------------------------------------
    # Assessment submission
    # ------------------------------------------------------------------

    async def submit_assessment(self, customer_id: str) -> RiskAssessment:
        """Score a customer and persist the resulting ACTIVE assessment."""
        customer = await self.get_customer(customer_id)
        now = self._clock()
        scored = compute_risk_score(customer, today=now.date())

        assessment = RiskAssessment(
            id=new_id(),
            customer_id=customer.id,
            risk_score=scored.score,
            risk_level=scored.level,
            result=scored.recommendation,
            explanation=build_explanation(scored.factors),
            factors=scored.factors,
            rules_applied="; ".join(scored.factors),
            flagged_for_manual_review=scored.flagged_for_manual_review,
            status=AssessmentStatus.ACTIVE,
            assessment_date=now,
        )
        await self._store_call("create assessment", self.stores.assessments.create(assessment))
        logger.info(
            "Assessment %s for customer %s: score=%s level=%s result=%s",
            assessment.id, customer.id, scored.score, scored.level.value, scored.recommendation.value,
        )
        return assessment

    async def send_to_underwriting(self, assessment_id: str, actor: Optional[str] = None) -> PendingDecision:
        """Flip an ACTIVE assessment to SENT_TO_UNDERWRITING and open its PENDING decision."""
        actor = self._actor(actor)
        assessments = self.stores.assessments

        async with self._lock("assessment", assessment_id):
            assessment = await self._store_call("load assessment", assessments.get(assessment_id))
            if assessment is None:
                raise NotFoundError("RiskAssessment", assessment_id)
            if assessment.status != AssessmentStatus.ACTIVE:
                raise StateConflictError(
                    f"Assessment {assessment_id!r} was already sent to underwriting",
                    current_status=assessment.status.value,
                    expected_status=AssessmentStatus.ACTIVE.value,
                )

            flipped = await self._store_call(
                "mark assessment as sent",
                assessments.update_status_if(
                    assessment_id, AssessmentStatus.ACTIVE, AssessmentStatus.SENT_TO_UNDERWRITING
                ),
            )
            if flipped is None:
                raise StateConflictError(f"Assessment {assessment_id!r} was already sent to underwriting")

            compensations: list[Compensation] = [
                (
                    f"restore assessment {assessment_id} to ACTIVE",
                    lambda: assessments.update_status_if(
                        assessment_id, AssessmentStatus.SENT_TO_UNDERWRITING, AssessmentStatus.ACTIVE
                    ),
                )
            ]
            decision = PendingDecision(
                id=new_id(),
                customer_id=assessment.customer_id,
                assessment_id=assessment_id,
                sent_to_underwriting_date=self._clock(),
                decided_by=actor,
            )
            # BaseException so caller-side cancellation also rolls back
            try:
                compensations.append(
                    (f"remove decision {decision.id}", lambda: self.stores.decisions.delete(decision.id))
                )
                await self._store_call("create decision", self.stores.decisions.create(decision))
                await self._store_call(
                    "record audit event",
                    self.audit.record(
                        "SUBMIT_ASSESSMENT", DECISION_ENTITY, decision.id, actor,
                        f"assessment={assessment_id};status=PENDING",
                    ),
                )
            except BaseException:
                await self._rollback(compensations)
                raise

        logger.info("Assessment %s sent to underwriting as decision %s", assessment_id, decision.id)
        return decision

    # ------------------------------------------------------------------
    # Underwriter actions
    # ------------------------------------------------------------------

    async def approve(
        self,
        decision_id: str,
        coverage_amount: Any,
        start_date: date,
        end_date: date,
        premium_amount: Any = None,
        reason: str = "",
        underwriter_notes: str = "",
        actor: Optional[str] = None,
    ) -> ApprovalResponse:
        actor = self._actor(actor)
        coverage = _positive_amount(coverage_amount, "coverage_amount")
        premium = _positive_amount(premium_amount, "premium_amount", required=False)
        if start_date is None or end_date is None:
            raise ValidationError("start_date and end_date are required", field="start_date")
        if end_date <= start_date:
            raise ValidationError("end_date must be after start_date", field="end_date")

        decisions = self.stores.decisions
        policies = self.stores.policies

        async with self._lock("decision", decision_id):
            current = await self._require_decision(decision_id)
            self._ensure_status(current, DecisionStatus.PENDING, "approve")

            if premium is None:
                assessment = await self._store_call(
                    "load assessment", self.stores.assessments.get(current.assessment_id)
                )
                if assessment is None:
                    logger.warning(
                        "Assessment %s missing for decision %s; pricing with fallback score %s",
                        current.assessment_id, decision_id, FALLBACK_RISK_SCORE,
                    )
                risk_score = assessment.risk_score if assessment else FALLBACK_RISK_SCORE
                premium = await self._price(coverage, risk_score)
            else:
                premium = premium.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

            now = self._clock()
            policy_id = new_id()
            policy = Policy(
                id=policy_id,
                customer_id=current.customer_id,
                decision_id=decision_id,
                policy_number=_policy_number(policy_id, now.date()),
                coverage_amount=coverage,
                premium_amount=premium,
                start_date=start_date,
                end_date=end_date,
                status=PolicyStatus.ACTIVE,
                issue_date=now.date(),
            )
            approved = current.approve(
                policy_id=policy_id,
                reason=reason,
                underwriter_notes=underwriter_notes,
                decided_at=now,
                decided_by=actor,
            )

            compensations: list[Compensation] = []
            try:
                compensations.append((f"delete policy {policy_id}", lambda: policies.delete(policy_id)))
                await self._store_call("create policy", policies.create(policy))

                compensations.append(
                    (
                        f"restore decision {decision_id} to PENDING",
                        lambda: decisions.replace_if_status(decision_id, DecisionStatus.APPROVED, current),
                    )
                )
                stored = await self._store_call(
                    "approve decision",
                    decisions.replace_if_status(decision_id, DecisionStatus.PENDING, approved),
                )
                if stored is None:
                    # Someone else moved it; their state is not ours to restore
                    compensations.pop()
                    raise StateConflictError(
                        f"Decision {decision_id!r} changed state during approval",
                        expected_status=DecisionStatus.PENDING.value,
                    )

                await self._store_call(
                    "record audit event",
                    self.audit.record(
                        "APPROVE_DECISION", DECISION_ENTITY, decision_id, actor,
                        f"status=APPROVED;policy={policy.policy_number};premium={premium}",
                    ),
                )
            except BaseException:
                logger.error("Approval of decision %s failed; rolling back", decision_id)
                await self._rollback(compensations)
                raise

        logger.info(
            "Decision %s approved: policy %s coverage=%s premium=%s",
            decision_id, policy.policy_number, coverage, premium,
        )
        return ApprovalResponse(decision=approved, policy=policy)

    async def _transition(
        self,
        decision_id: str,
        expected: DecisionStatus,
        action: str,
        audit_action: str,
        build: Callable[[Any], UnderwritingDecision],
        actor: str,
        details: str = "",
    ) -> UnderwritingDecision:
        decisions = self.stores.decisions

        async with self._lock("decision", decision_id):
            current = await self._require_decision(decision_id)
            self._ensure_status(current, expected, action)
            updated = build(current)

            compensations: list[Compensation] = [
                (
                    f"restore decision {decision_id} to {expected.value}",
                    lambda: decisions.replace_if_status(decision_id, DecisionStatus(updated.status), current),
                )
            ]
            try:
                stored = await self._store_call(
                    f"{action} decision", decisions.replace_if_status(decision_id, expected, updated)
                )
                if stored is None:
                    compensations.clear()
                    raise StateConflictError(
                        f"Decision {decision_id!r} changed state during {action}",
                        expected_status=expected.value,
                    )
                await self._store_call(
                    "record audit event",
                    self.audit.record(
                        audit_action, DECISION_ENTITY, decision_id, actor,
                        f"status={updated.status}" + (f";{details}" if details else ""),
                    ),
                )
            except BaseException:
                await self._rollback(compensations)
                raise

        logger.info("Decision %s: %s -> %s", decision_id, expected.value, updated.status)
        return stored

    async def decline(
        self,
        decision_id: str,
        reason: str,
        underwriter_notes: str = "",
        actor: Optional[str] = None,
    ) -> UnderwritingDecision:
        actor = self._actor(actor)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required to decline a decision", field="reason")

        return await self._transition(
            decision_id,
            DecisionStatus.PENDING,
            "decline",
            "DECLINE_DECISION",
            lambda d: d.decline(
                reason=reason,
                underwriter_notes=underwriter_notes,
                decided_at=self._clock(),
                decided_by=actor,
            ),
            actor,
            details=f"reason={reason}",
        )

    async def hold(
        self,
        decision_id: str,
        underwriter_notes: str = "",
        actor: Optional[str] = None,
    ) -> UnderwritingDecision:
        actor = self._actor(actor)
        return await self._transition(
            decision_id,
            DecisionStatus.PENDING,
            "hold",
            "HOLD_DECISION",
            lambda d: d.hold(underwriter_notes=underwriter_notes, decided_at=self._clock(), decided_by=actor),
            actor,
        )

    async def reopen(self, decision_id: str, actor: Optional[str] = None) -> UnderwritingDecision:
        actor = self._actor(actor)
        if self.on_hold_policy is OnHoldPolicy.TERMINAL:
            raise StateConflictError(
                f"Cannot reopen decision {decision_id!r}: ON_HOLD is terminal under the current policy",
                details={"on_hold_policy": self.on_hold_policy.value},
            )
        return await self._transition(
            decision_id,
            DecisionStatus.ON_HOLD,
            "reopen",
            "REOPEN_DECISION",
            lambda d: d.reopen(decided_by=actor),
            actor,
        )

    async def delete(self, decision_id: str, actor: Optional[str] = None) -> None:
        """Administrative removal from any state; the assessment and any policy are left alone."""
        actor = self._actor(actor)
        decisions = self.stores.decisions

        async with self._lock("decision", decision_id):
            current = await self._require_decision(decision_id)
            compensations: list[Compensation] = [
                (f"restore decision {decision_id}", lambda: self._restore_decision(current))
            ]
            try:
                deleted = await self._store_call("delete decision", decisions.delete(decision_id))
                if not deleted:
                    compensations.clear()
                    raise NotFoundError(DECISION_ENTITY, decision_id)
                await self._store_call(
                    "record audit event",
                    self.audit.record(
                        "DELETE_DECISION", DECISION_ENTITY, decision_id, actor,
                        f"Deleted decision for customer={current.customer_id};status={current.status}",
                    ),
                )
            except BaseException:
                await self._rollback(compensations)
                raise

        logger.info("Decision %s deleted by %s (was %s)", decision_id, actor, current.status)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def get_assessment(self, assessment_id: str) -> RiskAssessment:
        assessment = await self._store_call("load assessment", self.stores.assessments.get(assessment_id))
        if assessment is None:
            raise NotFoundError("RiskAssessment", assessment_id)
        return assessment

    async def list_assessments(
        self,
        result: Optional[AssessmentResult] = None,
        customer_id: Optional[str] = None,
    ) -> list[RiskAssessment]:
        return await self._store_call("list assessments", self.stores.assessments.list(result, customer_id))

    async def get_decision(self, decision_id: str) -> UnderwritingDecision:
        return await self._require_decision(decision_id)

    async def list_decisions(self, status: Optional[DecisionStatus] = None) -> list[UnderwritingDecision]:
        return await self._store_call("list decisions", self.stores.decisions.list(status))

    async def get_policy(self, policy_id: str) -> Policy:
        policy = await self._store_call("load policy", self.stores.policies.get(policy_id))
        if policy is None:
            raise NotFoundError("Policy", policy_id)
        return policy

    async def list_policies(self, customer_id: Optional[str] = None) -> list[Policy]:
        return await self._store_call("list policies", self.stores.policies.list(customer_id))

    async def quote_premium(self, coverage_amount: Any, risk_score: Any) -> PremiumQuote:
        premium = await self._price(coverage_amount, risk_score)
        return PremiumQuote(
            coverage_amount=Decimal(str(coverage_amount)),
            risk_score=int(risk_score),
            premium_amount=premium,
        )

    async def list_audit_events(
        self,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
    ) -> list[AuditEvent]:
        return await self._store_call("list audit events", self.audit.list_events(entity_id, entity_type))

    # ------------------------------------------------------------------
    # Premium payments
    # ------------------------------------------------------------------

    async def _require_payment(self, payment_id: str) -> PremiumPayment:
        payment = await self._store_call("load payment", self.stores.payments.get(payment_id))
        if payment is None:
            raise NotFoundError(PAYMENT_ENTITY, payment_id)
        return payment

    def _settle(self, fields: dict[str, Any]) -> dict[str, Any]:
        # A payment marked PAID gets its payment and processing dates filled in
        if fields.get("status") == PaymentStatus.PAID:
            today = self._clock().date()
            if fields.get("payment_date") is None:
                fields["payment_date"] = today
            fields["processed_date"] = today
        return fields

    async def record_payment(self, request: PaymentCreateRequest, actor: Optional[str] = None) -> PremiumPayment:
        """Record a premium payment against an ACTIVE policy; the amount defaults to the policy premium."""
        actor = self._actor(actor)
        policy = await self.get_policy(request.policy_id)
        if policy.status != PolicyStatus.ACTIVE:
            raise StateConflictError(
                f"Policy {policy.id!r} is not active",
                current_status=policy.status.value,
                expected_status=PolicyStatus.ACTIVE.value,
            )
        amount = _positive_amount(request.amount, "amount", required=False) or policy.premium_amount

        payment = PremiumPayment(
            id=new_id(),
            **self._settle(
                {
                    **request.model_dump(exclude={"amount"}),
                    "amount": amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
                    "due_date": request.due_date or policy.start_date,
                }
            ),
        )
        payments = self.stores.payments

        compensations: list[Compensation] = [
            (f"remove payment {payment.id}", lambda: payments.delete(payment.id))
        ]
        try:
            await self._store_call("create payment", payments.create(payment))
            await self._store_call(
                "record audit event",
                self.audit.record(
                    "RECORD_PAYMENT", PAYMENT_ENTITY, payment.id, actor,
                    f"policy={policy.policy_number};amount={payment.amount};status={payment.status.value}",
                ),
            )
        except BaseException:
            await self._rollback(compensations)
            raise

        logger.info("Payment %s recorded for policy %s: %s %s", payment.id, policy.id, payment.amount, payment.status.value)
        return payment

    async def update_payment(
        self,
        payment_id: str,
        request: PaymentUpdateRequest,
        actor: Optional[str] = None,
    ) -> PremiumPayment:
        """Apply the fields sent; PAID and CANCELLED payments are final."""
        actor = self._actor(actor)
        payments = self.stores.payments

        async with self._lock("payment", payment_id):
            current = await self._require_payment(payment_id)
            if current.status in FINAL_PAYMENT_STATUSES:
                raise StateConflictError(
                    f"Payment {payment_id!r} is {current.status.value} and can no longer change",
                    current_status=current.status.value,
                )
            changes = self._settle(request.model_dump(exclude_unset=True, exclude_none=True))
            updated = current.model_copy(update=changes)

            compensations: list[Compensation] = [
                (
                    f"restore payment {payment_id}",
                    lambda: payments.replace_if_status(payment_id, updated.status, current),
                )
            ]
            try:
                stored = await self._store_call(
                    "update payment", payments.replace_if_status(payment_id, current.status, updated)
                )
                if stored is None:
                    compensations.clear()
                    raise StateConflictError(f"Payment {payment_id!r} changed state during update")
                await self._store_call(
                    "record audit event",
                    self.audit.record(
                        "UPDATE_PAYMENT", PAYMENT_ENTITY, payment_id, actor,
                        f"status={current.status.value}->{updated.status.value}",
                    ),
                )
            except BaseException:
                await self._rollback(compensations)
                raise

        logger.info("Payment %s: %s -> %s", payment_id, current.status.value, updated.status.value)
        return stored

    async def get_payment(self, payment_id: str) -> PremiumPayment:
        return await self._require_payment(payment_id)

    async def list_payments(
        self,
        policy_id: Optional[str] = None,
        status: Optional[PaymentStatus] = None,
    ) -> list[PremiumPayment]:
        return await self._store_call("list payments", self.stores.payments.list(policy_id, status))
