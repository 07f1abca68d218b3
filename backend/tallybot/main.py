"""Tallybot webhook service.

Telegram retries any update that does not get a 2xx answer, so bodies
that fail validation are acknowledged with ``{"ok": true}`` and dropped.
Only genuine server bugs produce a 500.
"""

import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tallybot.api.routes import health, telegram
from tallybot.logging import configure_logging
from tallybot.models.contracts import ErrorResponse

configure_logging()

logger = structlog.get_logger()

app = FastAPI(title="Tallybot API", version=health.VERSION, docs_url=None, redoc_url=None)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def _with_request_id(request: Request, response: JSONResponse) -> JSONResponse:
    response.headers["X-Request-ID"] = getattr(
        request.state, "request_id", request.headers.get("X-Request-ID", "")
    )
    return response


@app.exception_handler(RequestValidationError)
async def unusable_update_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Acknowledge a malformed update so Telegram stops redelivering it."""
    logger.warning(
        "telegram_update_rejected",
        path=request.url.path,
        fields=sorted({".".join(str(p) for p in err["loc"][1:]) for err in exc.errors()}),
    )
    return _with_request_id(request, JSONResponse(status_code=200, content={"ok": True}))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    body = ErrorResponse(error="internal_error", message="Internal server error", retryable=True)
    return _with_request_id(request, JSONResponse(status_code=500, content=body.model_dump()))


app.include_router(health.router)
app.include_router(telegram.router, prefix="/api")
