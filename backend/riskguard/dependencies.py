from fastapi import Request

from riskguard.config.settings import Settings
from riskguard.repositories.base import Stores
from riskguard.services.premium_service import build_pricing_service
from riskguard.services.underwriting_service import UnderwritingWorkflow


def build_stores(settings: Settings) -> Stores:
    if settings.STORAGE_BACKEND == "mongo":
        from riskguard.repositories.mongo import mongo_stores

        return mongo_stores()
    from riskguard.repositories.memory import in_memory_stores

    return in_memory_stores()


def build_workflow(settings: Settings, stores: Stores | None = None) -> UnderwritingWorkflow:
    return UnderwritingWorkflow(
        stores or build_stores(settings),
        build_pricing_service(
            settings.PRICING_SERVICE_URL,
            base_rate=settings.PREMIUM_BASE_RATE,
            timeout=settings.PRICING_TIMEOUT_SECONDS,
        ),
        on_hold_policy=settings.ON_HOLD_POLICY,
        store_timeout=settings.STORE_TIMEOUT_SECONDS,
        pricing_timeout=settings.PRICING_TIMEOUT_SECONDS,
        default_actor=settings.DEFAULT_ACTOR,
    )


def get_workflow(request: Request) -> UnderwritingWorkflow:
    return request.app.state.workflow
