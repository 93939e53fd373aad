import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from loanflow.api.errors import register_exception_handlers
from loanflow.api.v1.router import router as v1_router
from loanflow.config import Settings, settings as default_settings
from loanflow.database import init_db, make_engine, make_session_factory
from loanflow.services import build_services
from loanflow.services.document_service import DocumentStorage

logger = logging.getLogger("loanflow.api")


def create_app(settings: Settings | None = None, *, storage: DocumentStorage | None = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = make_engine(settings.database_url)
        await init_db(engine)
        services = build_services(settings, make_session_factory(engine), storage=storage)
        app.state.services = services
        logger.info("startup database_url=%s celery_enabled=%s", settings.database_url, settings.celery_enabled)
        try:
            yield
        finally:
            await services.notifier.drain()
            await engine.dispose()

    app = FastAPI(title="Loan Application Workflow API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Attach a request id to every response and log a compact access line.

        A caller-provided X-Request-ID is reused; otherwise a UUID4 is generated.
        """

        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "access request_id=%s method=%s path=%s status=%s duration_ms=%.2f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    register_exception_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(v1_router, prefix="/api/v1")
    return app


app = create_app()
