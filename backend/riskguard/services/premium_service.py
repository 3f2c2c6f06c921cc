"""
PremiumService
==============
Premium pricing contract:

  calculate_premium(coverage_amount > 0, risk_score ∈ [0, 100]) → Decimal (2dp)

  - deterministic and side-effect free
  - monotonically non-decreasing in both inputs
  - invalid input raises InvalidInputError; it is never clamped

The formula itself is a pluggable ``PricingStrategy``. The default
``TieredRateStrategy`` charges a base rate of the coverage, scaled by a
risk-tier factor:

  score ≤ 25 → 0.8 | ≤ 50 → 1.0 | ≤ 75 → 1.3 | else 1.7

``PricingService`` is the async collaborator the workflow talks to. It either
prices in-process (``LocalPricingService``) or calls a remote pricing API
(``HttpPricingService``).
"""

import logging
from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Sequence, Union

import httpx

from riskguard.errors import InvalidInputError, PricingError

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal, str]

CENT = Decimal("0.01")
DEFAULT_BASE_RATE = Decimal("0.005")

# (inclusive upper bound on risk score, factor); last bound must be 100
DEFAULT_TIERS: tuple[tuple[int, Decimal], ...] = (
    (25, Decimal("0.8")),
    (50, Decimal("1.0")),
    (75, Decimal("1.3")),
    (100, Decimal("1.7")),
)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class PricingStrategy(ABC):
    """A premium formula. Must be non-decreasing in coverage and score."""

    @abstractmethod
    def price(self, coverage_amount: Decimal, risk_score: int) -> Decimal:
        """Return the unrounded premium for validated inputs."""


class TieredRateStrategy(PricingStrategy):
    def __init__(
        self,
        base_rate: Number = DEFAULT_BASE_RATE,
        tiers: Sequence[tuple[int, Number]] = DEFAULT_TIERS,
    ):
        self.base_rate = Decimal(str(base_rate))
        if self.base_rate <= 0:
            raise ValueError("base_rate must be positive")

        self.tiers = [(int(upper), Decimal(str(factor))) for upper, factor in tiers]
        if not self.tiers or self.tiers[-1][0] < 100:
            raise ValueError("tiers must cover risk scores up to 100")
        for (prev_upper, prev_factor), (upper, factor) in zip(self.tiers, self.tiers[1:]):
            if upper <= prev_upper or factor < prev_factor:
                raise ValueError("tier bounds must increase and factors must not decrease")

    def factor_for(self, risk_score: int) -> Decimal:
        for upper, factor in self.tiers:
            if risk_score <= upper:
                return factor
        return self.tiers[-1][1]

    def price(self, coverage_amount: Decimal, risk_score: int) -> Decimal:
        return self.base_rate * coverage_amount * self.factor_for(risk_score)


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------

def _to_decimal(value: Number, field: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidInputError(f"{field} must be a number", field=field)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidInputError(f"{field} must be a number, got {value!r}", field=field)
    if not amount.is_finite():
        raise InvalidInputError(f"{field} must be finite, got {value!r}", field=field)
    return amount


def validate_pricing_input(coverage_amount: Number, risk_score: Number) -> tuple[Decimal, int]:
    coverage = _to_decimal(coverage_amount, "coverage_amount")
    if coverage <= 0:
        raise InvalidInputError(
            f"coverage_amount must be greater than 0, got {coverage}", field="coverage_amount"
        )

    score = _to_decimal(risk_score, "risk_score")
    if score != score.to_integral_value():
        raise InvalidInputError(f"risk_score must be an integer, got {score}", field="risk_score")
    if not 0 <= score <= 100:
        raise InvalidInputError(f"risk_score must be within [0, 100], got {score}", field="risk_score")
    return coverage, int(score)


def normalize_premium(value: Number) -> Decimal:
    """Validate a premium produced by a strategy or remote service and round to cents."""
    if isinstance(value, bool):
        raise PricingError(f"Pricing returned a non-numeric premium: {value!r}")
    try:
        premium = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise PricingError(f"Pricing returned a non-numeric premium: {value!r}")
    if not premium.is_finite() or premium < 0:
        raise PricingError(f"Pricing returned an invalid premium: {value!r}")
    return premium.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_premium(
    coverage_amount: Number,
    risk_score: Number,
    strategy: Optional[PricingStrategy] = None,
) -> Decimal:
    coverage, score = validate_pricing_input(coverage_amount, risk_score)
    strategy = strategy or TieredRateStrategy()
    return normalize_premium(strategy.price(coverage, score))


# ---------------------------------------------------------------------------
# Pricing services
# ---------------------------------------------------------------------------

class PricingService(ABC):
    @abstractmethod
    async def calculate(self, coverage_amount: Number, risk_score: Number) -> Decimal:
        """Price a policy; raise InvalidInputError or PricingError on failure."""


class LocalPricingService(PricingService):
    def __init__(self, strategy: Optional[PricingStrategy] = None):
        self.strategy = strategy or TieredRateStrategy()

    async def calculate(self, coverage_amount: Number, risk_score: Number) -> Decimal:
        return calculate_premium(coverage_amount, risk_score, self.strategy)


class HttpPricingService(PricingService):
    """Remote pricing API: GET {base_url}/api/premium/calculate → number."""

    def __init__(self, base_url: str, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def _get(self, client: httpx.AsyncClient, params: dict) -> httpx.Response:
        resp = await client.get(f"{self.base_url}/api/premium/calculate", params=params)
        resp.raise_for_status()
        return resp

    async def calculate(self, coverage_amount: Number, risk_score: Number) -> Decimal:
        coverage, score = validate_pricing_input(coverage_amount, risk_score)
        params = {"coverageAmount": str(coverage), "riskScore": score}
        try:
            if self._client is not None:
                resp = await self._get(self._client, params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await self._get(client, params)
            payload = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("Pricing service returned %s: %s", e.response.status_code, e.response.text[:200])
            raise PricingError(f"Pricing service returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("Pricing service request failed: %s", e)
            raise PricingError(f"Pricing service unavailable: {e}") from e
        except ValueError as e:
            raise PricingError("Pricing service returned a non-JSON body") from e

        if isinstance(payload, dict):
            payload = payload.get("premium_amount", payload.get("premiumAmount"))
        return normalize_premium(payload)


def build_pricing_service(
    service_url: str = "",
    base_rate: Number = DEFAULT_BASE_RATE,
    timeout: float = 5.0,
) -> PricingService:
    if service_url:
        logger.info("Using remote pricing service at %s", service_url)
        return HttpPricingService(service_url, timeout=timeout)
    return LocalPricingService(TieredRateStrategy(base_rate=base_rate))
