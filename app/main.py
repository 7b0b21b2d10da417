"""
Swipematch — FastAPI Application Entry Point

Owns the process-wide ``Store``: the lifespan opens it (retrying the first
ping while the database comes up) and disposes it once in-flight requests
have drained. Engine errors are turned into HTTP responses in exactly one
place, ``engine_error_handler``; every log line emitted while a request is
being served carries that request's id.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.config import get_settings
from app.database import Store, create_store
from app.errors import EngineError, ErrorKind, StoreFailureError

settings = get_settings()

# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.LOG_LEVEL)
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger: structlog.stdlib.BoundLogger = structlog.get_logger("swipematch")

# ---------------------------------------------------------------------------
# In-flight request tracking for graceful shutdown
# ---------------------------------------------------------------------------

class InFlightRequests:
    """Counts requests between middleware entry and exit.

    On shutdown the lifespan waits (up to ``SHUTDOWN_DRAIN_SECONDS``) for the
    count to reach zero, so swipes and message appends that already hold a
    transaction can commit before the pool is disposed.
    """

    def __init__(self, drain_timeout: float) -> None:
        self.count = 0
        self.drain_timeout = drain_timeout
        self._idle = asyncio.Event()
        self._idle.set()

    def enter(self) -> None:
        self.count += 1
        self._idle.clear()

    def leave(self) -> None:
        self.count -= 1
        if self.count <= 0:
            self._idle.set()

    async def drain(self) -> bool:
        """Wait for idle; False when the timeout expired first."""
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=self.drain_timeout)
        except asyncio.TimeoutError:
            logger.warning("drain_timeout_exceeded", remaining_requests=self.count)
            return False
        return True


in_flight = InFlightRequests(settings.SHUTDOWN_DRAIN_SECONDS)


async def _wait_for_store(store: Store) -> None:
    """Ping the store until it answers, backing off exponentially.

    Cloud SQL and local Postgres containers are often still starting when
    the process boots; after ``DB_CONNECT_ATTEMPTS`` failures the last
    ``StoreFailureError`` aborts startup.
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type(StoreFailureError),
        stop=stop_after_attempt(settings.DB_CONNECT_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    ):
        with attempt:
            logger.debug(
                "store_ping_attempt",
                attempt_number=attempt.retry_state.attempt_number,
            )
            await store.ping()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the shared store on startup and dispose of it on shutdown."""
    logger.info(
        "startup_begin",
        environment=settings.ENVIRONMENT,
        log_level=settings.LOG_LEVEL,
    )

    store = create_store(settings)
    app.state.store = store

    # Issuing a simple query warms the pool.
    await _wait_for_store(store)
    logger.info("database_pool_initialised", dialect=store.dialect_name)

    if settings.DB_AUTO_CREATE_SCHEMA:
        await store.create_all()
        logger.info("database_schema_created")

    logger.info("startup_complete")

    yield

    logger.info("shutdown_begin")

    await in_flight.drain()

    await store.dispose()
    app.state.store = None
    logger.info("database_pool_closed")

    logger.info("shutdown_complete")


# ---------------------------------------------------------------------------
# Middleware classes
# ---------------------------------------------------------------------------

class TimeoutMiddleware(BaseHTTPMiddleware):
    """Answer 504 when a request outlives ``REQUEST_TIMEOUT_SECONDS``.

    Cancelling the handler also cancels its store transaction, which rolls
    back; a swipe or message is either fully written or not at all.
    """

    def __init__(self, app, timeout_seconds: float = 30.0) -> None:
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "request_timeout",
                method=request.method,
                path=request.url.path,
                timeout=self.timeout_seconds,
            )
            return JSONResponse(
                status_code=504,
                content={
                    "error": {
                        "kind": "timeout",
                        "message": f"Request exceeded {self.timeout_seconds:g}s",
                    }
                },
            )


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Bind a request id into structlog's context and log the outcome.

    The id comes from ``X-Request-ID`` when the caller sends one and is
    echoed back, so service events (``swipe_recorded``, ``match_created``)
    can be joined to the request that produced them.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        start = time.perf_counter()
        in_flight.enter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_error", duration_ms=_elapsed_ms(start))
            raise
        finally:
            in_flight.leave()
            structlog.contextvars.clear_contextvars()

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request_handled",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=_elapsed_ms(start),
        )
        return response


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Swipematch",
    description="Swipe, match and conversation backend",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# -- Middleware (applied in reverse order: last added runs first) ---------- #

app.add_middleware(RequestLogMiddleware)
app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -- Engine error translation ---------------------------------------------- #

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.STORE_FAILURE: 503,
}


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    body = exc.to_dict()
    if exc.kind is ErrorKind.STORE_FAILURE:
        logger.error("store_failure", error=exc.message)
        body["message"] = "Database error"
    else:
        logger.info("request_rejected", kind=exc.kind.value, message=exc.message)
    return JSONResponse(status_code=_STATUS_BY_KIND[exc.kind], content={"error": body})


# -- Health-check endpoints ------------------------------------------------ #


@app.get("/health", tags=["health"])
async def health_liveness() -> dict:
    """Lightweight liveness probe; always returns healthy if the process is
    running."""
    return {"status": "ok", "service": "swipematch"}


@app.get("/health/deep", tags=["health"])
async def health_deep(request: Request) -> dict:
    """Deep readiness probe: verifies database connectivity."""
    result: dict = {"status": "healthy", "database": "connected"}

    try:
        store = getattr(request.app.state, "store", None)
        if store is None:
            raise RuntimeError("Store not initialised")
        await store.ping()
    except (EngineError, RuntimeError) as exc:
        logger.error("health_db_failure", error=str(exc))
        result["database"] = f"error: {exc}"
        result["status"] = "degraded"

    return result


# -- API router ------------------------------------------------------------ #

from app.api.router import router as api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
