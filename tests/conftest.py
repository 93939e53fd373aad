import pytest

from loanflow.config import Settings
from loanflow.database import init_db, make_engine, make_session_factory
from loanflow.schemas.product import ProductCreate
from loanflow.services import build_services
from tests._doubles import RecordingStorage

HOME_LOAN = ProductCreate(
    id="product456",
    name="Home Improvement Loan",
    min_amount=1000,
    max_amount=50000,
    min_term_months=6,
    max_term_months=60,
    base_rate=7.5,
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'loanflow.db'}",
        storage_dir=str(tmp_path / "documents"),
        celery_enabled=False,
    )


@pytest.fixture
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture
async def engine(settings):
    engine = make_engine(settings.database_url)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def services(settings, storage, engine):
    svc = build_services(settings, make_session_factory(engine), storage=storage)
    await svc.products.create_product(HOME_LOAN)
    yield svc
    await svc.notifier.drain()
