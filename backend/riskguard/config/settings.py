from decimal import Decimal
from typing import Literal
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Storage ──────────────────────────────────────────────────────────────
    STORAGE_BACKEND: Literal["memory", "mongo"] = "memory"
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB: str = "riskguard"
    MONGO_TIMEOUT_MS: int = 5000

    # ── Pricing ──────────────────────────────────────────────────────────────
    PREMIUM_BASE_RATE: Decimal = Decimal("0.005")
    PRICING_SERVICE_URL: str = ""
    PRICING_TIMEOUT_SECONDS: float = 5.0

    # ── Workflow ─────────────────────────────────────────────────────────────
    STORE_TIMEOUT_SECONDS: float = 5.0
    ON_HOLD_POLICY: Literal["terminal", "reopenable"] = "terminal"
    DEFAULT_ACTOR: str = "System"

    # ── Logging ──────────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    # ── CORS ──────────────────────────────────────────────────────────────────
    ALLOW_ORIGINS: str = "*"

    @property
    def cors_origins(self) -> list[str]:
        if self.ALLOW_ORIGINS == "*":
            return ["*"]
        return [o.strip() for o in self.ALLOW_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
