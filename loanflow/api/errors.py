import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from loanflow.errors import ErrorKind, LoanflowError

logger = logging.getLogger("loanflow.api")

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.COLLABORATOR: 503,
}


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _respond(request: Request, status_code: int, payload: dict) -> JSONResponse:
    request_id = _get_request_id(request)
    payload["request_id"] = request_id

    response = JSONResponse(status_code=status_code, content=payload)
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LoanflowError)
    async def loanflow_error_handler(request: Request, exc: LoanflowError):
        status_code = STATUS_BY_KIND[exc.kind]
        if status_code >= 500:
            logger.warning(
                "collaborator_error request_id=%s code=%s operation=%s detail=%s",
                _get_request_id(request),
                exc.code,
                exc.operation,
                exc.message,
            )
        return _respond(request, status_code, exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _respond(request, exc.status_code, {"detail": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # ctx may hold the raw ValueError, which is not JSON serialisable.
        errors = [{k: v for k, v in e.items() if k != "ctx"} for e in exc.errors()]
        return _respond(request, 422, {"detail": errors, "code": "request_validation"})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_exception request_id=%s", _get_request_id(request), exc_info=exc)
        return _respond(request, 500, {"detail": "Internal Server Error"})
