"""
Standalone customer seeder script
=================================
Run from the backend/ directory:

    cd backend
    python -m scripts.seed_customers            # customers only
    python -m scripts.seed_customers --assess   # also score + send to underwriting
    python -m scripts.seed_customers --force    # wipe the customers collection first

Reads MONGO_URL / MONGO_DB from the environment or backend/.env, like the API.
The sample customers cover every risk level so the underwriter queue has
APPROVED, REVIEW_REQUIRED and DECLINED recommendations to work through.
"""

import asyncio
import os
import sys
from datetime import date

# Allow running as `python -m scripts.seed_customers` from backend/
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from motor.motor_asyncio import AsyncIOMotorClient  # noqa: E402
from beanie import init_beanie  # noqa: E402

from riskguard.config.settings import settings  # noqa: E402
from riskguard.dependencies import build_workflow  # noqa: E402
from riskguard.db.session import DOCUMENT_MODELS  # noqa: E402
from riskguard.models.customer import CustomerDocument  # noqa: E402
from riskguard.repositories.mongo import mongo_stores  # noqa: E402
from riskguard.schemas.customer import CustomerCreateRequest, InsuranceType  # noqa: E402

CUSTOMER_SEED_DATA = [
    # 50 + 0 (age 45) + 5 (health) − 5 (verified) − 10 (complete contact) = 40 → MEDIUM/APPROVED
    {
        "name": "Priya Raman",
        "date_of_birth": date(1981, 3, 12),
        "insurance_type": InsuranceType.HEALTH,
        "document_verified": True,
        "email": "priya.raman@example.com",
        "phone": "+1-555-0142",
        "address": "18 Elm Street",
        "city": "Springfield",
        "state": "IL",
        "zip_code": "62701",
    },
    # 50 + 10 (age ~30) + 10 (life) − 5 − 10 = 55 → HIGH/REVIEW_REQUIRED
    {
        "name": "Daniel Okafor",
        "date_of_birth": date(1996, 7, 2),
        "insurance_type": InsuranceType.LIFE,
        "document_verified": True,
        "email": "d.okafor@example.com",
        "phone": "+1-555-0199",
        "address": "420 Lakeview Ave",
        "city": "Madison",
        "state": "WI",
        "zip_code": "53703",
    },
    # 50 + 20 (age < 25) + 15 (motor) + 20 (unverified) + 15 (email only) → clamped 100 → CRITICAL/DECLINED
    {
        "name": "Tyler Brooks",
        "date_of_birth": date(2004, 11, 20),
        "insurance_type": InsuranceType.MOTOR,
        "document_verified": False,
        "email": "tyler.b@example.com",
    },
    # 50 + 15 (age > 65) + 10 (life) − 5 + 0 (email + phone) = 70 → HIGH/REVIEW_REQUIRED
    {
        "name": "Margaret Ellison",
        "date_of_birth": date(1952, 1, 30),
        "insurance_type": InsuranceType.LIFE,
        "document_verified": True,
        "email": "m.ellison@example.com",
        "phone": "+1-555-0107",
    },
    # No date of birth: age rule skipped. 50 + 5 − 5 − 10 = 40 → MEDIUM/APPROVED
    {
        "name": "Sam Whitaker",
        "insurance_type": InsuranceType.HEALTH,
        "document_verified": True,
        "email": "sam.whitaker@example.com",
        "phone": "+1-555-0175",
        "address": "9 Harbor Road",
        "city": "Portland",
        "state": "ME",
        "zip_code": "04101",
    },
]


async def main():
    print(f"Connecting to MongoDB database: {settings.MONGO_DB} ...")
    client = AsyncIOMotorClient(settings.MONGO_URL, serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS)
    await init_beanie(database=client[settings.MONGO_DB], document_models=DOCUMENT_MODELS)

    existing = await CustomerDocument.count()
    if existing > 0:
        print(f"Collection already has {existing} customers. Use --force to re-seed.")
        if "--force" not in sys.argv:
            client.close()
            return

        print("Force re-seeding: deleting existing customers...")
        await CustomerDocument.delete_all()

    workflow = build_workflow(settings, stores=mongo_stores())

    print(f"Seeding {len(CUSTOMER_SEED_DATA)} customers...\n")
    for i, data in enumerate(CUSTOMER_SEED_DATA, 1):
        customer = await workflow.create_customer(CustomerCreateRequest(**data))
        print(f"  [{i}/{len(CUSTOMER_SEED_DATA)}] {customer.name} ({customer.insurance_type.value}) → {customer.id}")

        if "--assess" in sys.argv:
            assessment = await workflow.submit_assessment(customer.id)
            decision = await workflow.send_to_underwriting(assessment.id, actor="seed-script")
            print(
                f"    score={assessment.risk_score} level={assessment.risk_level.value} "
                f"result={assessment.result.value} decision={decision.id}"
            )

    final_count = await CustomerDocument.count()
    print(f"\n Done. {final_count} documents in customers collection.")

    client.close()


if __name__ == "__main__":
    asyncio.run(main())
