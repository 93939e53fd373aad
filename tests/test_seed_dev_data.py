import asyncio

from loanflow.config import Settings
from loanflow.database import make_engine, make_session_factory
from loanflow.schemas.status import DocumentType
from loanflow.scripts.seed_dev_data import DEMO_PRODUCTS, seed_dev_data
from loanflow.services.product_service import ProductService


def test_seed_dev_data_is_idempotent(tmp_path):
    settings = Settings(_env_file=None, database_url=f"sqlite+aiosqlite:///{tmp_path / 'seed.db'}")

    first = asyncio.run(seed_dev_data(settings))
    second = asyncio.run(seed_dev_data(settings))

    assert [p.id for p in first] == [p.id for p in DEMO_PRODUCTS]
    assert first == second

    async def _lookup():
        engine = make_engine(settings.database_url)
        try:
            return await ProductService(make_session_factory(engine), settings=settings).get_product("product456")
        finally:
            await engine.dispose()

    product = asyncio.run(_lookup())
    assert product.required_document_types == [DocumentType.ID_PROOF, DocumentType.INCOME_PROOF]
    assert product.is_active is True
