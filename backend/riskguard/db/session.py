import logging

from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie
from riskguard.config.settings import settings
from riskguard.models.customer import CustomerDocument
from riskguard.models.assessment import RiskAssessmentDocument
from riskguard.models.underwriting import UnderwritingDecisionDocument
from riskguard.models.policy import PolicyDocument
from riskguard.models.audit import AuditLogDocument
from riskguard.models.payment import PremiumPaymentDocument

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = [
    CustomerDocument,
    RiskAssessmentDocument,
    UnderwritingDecisionDocument,
    PolicyDocument,
    AuditLogDocument,
    PremiumPaymentDocument,
]

_client: AsyncIOMotorClient | None = None


async def init_db() -> None:
    """Connect to MongoDB and initialise Beanie ODM (creates the unique indexes)."""
    global _client

    logger.info("Connecting to MongoDB database %s ...", settings.MONGO_DB)

    _client = AsyncIOMotorClient(
        settings.MONGO_URL,
        serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS,
    )

    db = _client[settings.MONGO_DB]

    # Verify connection
    await _client.admin.command("ping")
    logger.info("Connected to MongoDB: %s", settings.MONGO_DB)

    await init_beanie(database=db, document_models=DOCUMENT_MODELS)
    logger.info("Beanie ODM initialised")


async def close_db() -> None:
    """Close the MongoDB connection gracefully."""
    global _client
    if _client:
        _client.close()
        _client = None
        logger.info("MongoDB connection closed")


async def check_connection() -> bool:
    """Return True if the MongoDB connection is alive."""
    if _client is None:
        return False
    try:
        await _client.admin.command("ping")
        return True
    except Exception:
        logger.warning("MongoDB ping failed", exc_info=True)
        return False
