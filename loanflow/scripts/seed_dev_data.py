"""Development seed data.

Safe to run multiple times: products are upserted by id.

Usage:
  LOANFLOW_DATABASE_URL=sqlite+aiosqlite:///./loanflow.db python -m loanflow.scripts.seed_dev_data
"""

from __future__ import annotations

import asyncio
import logging

from loanflow.config import Settings, settings as default_settings
from loanflow.database import init_db, make_engine, make_session_factory
from loanflow.schemas.product import LoanProduct, ProductCreate
from loanflow.schemas.status import DocumentType
from loanflow.services.product_service import ProductService

logger = logging.getLogger(__name__)

DEMO_PRODUCTS: list[ProductCreate] = [
    ProductCreate(
        id="product456",
        name="Home Improvement Loan",
        min_amount=1000,
        max_amount=50000,
        min_term_months=6,
        max_term_months=60,
        base_rate=7.5,
    ),
    ProductCreate(
        id="personal-standard",
        name="Personal Loan",
        min_amount=500,
        max_amount=25000,
        min_term_months=3,
        max_term_months=48,
        base_rate=9.9,
        required_document_types=[DocumentType.ID_PROOF, DocumentType.INCOME_PROOF, DocumentType.BANK_STATEMENT],
    ),
    ProductCreate(
        id="small-business",
        name="Small Business Loan",
        min_amount=5000,
        max_amount=250000,
        min_term_months=12,
        max_term_months=120,
        base_rate=6.25,
        required_document_types=[
            DocumentType.ID_PROOF,
            DocumentType.INCOME_PROOF,
            DocumentType.BANK_STATEMENT,
            DocumentType.EMPLOYMENT_PROOF,
        ],
    ),
]


async def seed_dev_data(settings: Settings | None = None) -> list[LoanProduct]:
    settings = settings or default_settings
    engine = make_engine(settings.database_url)
    try:
        await init_db(engine)
        products = ProductService(make_session_factory(engine), settings=settings)
        seeded = [await products.create_product(p) for p in DEMO_PRODUCTS]
    finally:
        await engine.dispose()

    logger.info("seeded products=%s", ",".join(p.id for p in seeded))
    return seeded


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed_dev_data())


if __name__ == "__main__":
    main()
