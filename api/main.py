"""
api/main.py -- FastAPI application entry point for the AutoSales backend.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. CORSMiddleware  -- adds CORS headers for ALLOWED_ORIGINS only
  2. log_requests    -- one log line per request with latency

Lifespan builds the stores and the token codec from Settings and puts them on
app.state; shutdown closes them symmetrically. Nothing downstream reads
configuration on its own -- the secret and database URL arrive by injection.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import HealthResponse
from api.routes.auth import router as auth_router
from api.routes.users import router as users_router
from api.routes.vehiclesales import router as sales_router
from auth.models import User
from auth.permissions import Role, Status
from auth.store import UserStore
from auth.tokens import TokenCodec, hash_password
from core.config import Settings, get_settings
from core.errors import InternalError, ServiceError, field_error
from ledger.store import SaleStore

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("autosales.api")

settings = get_settings()


def seed_admin(user_store: UserStore, settings: Settings) -> None:
    """Create the configured first admin if that email is not registered yet.

    Without a seed (or the create-user CLI command) a fresh database has no
    staff member able to approve the first registration.
    """
    seed = settings.admin_seed
    if seed is None or user_store.get_by_email(seed["email"]) is not None:
        return
    try:
        user_store.create_user(
            User(
                name=seed["name"],
                email=seed["email"],
                password_hash=hash_password(seed["password"]),
                phone=seed["phone"],
                role=Role.admin.value,
                status=Status.active.value,
            )
        )
    except IntegrityError:
        # Another worker seeded it first.
        return
    logger.info("Seeded admin account %s", seed["email"])


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build stores and codec on startup; close them on shutdown."""
    logger.info("AutoSales API starting up")
    app.state.codec = TokenCodec(
        settings.secret_key,
        access_ttl=settings.token_expire_seconds,
        reset_ttl=settings.reset_token_expire_seconds,
    )
    app.state.frontend_url = settings.frontend_url
    app.state.user_store = UserStore(settings.database_url)
    app.state.sale_store = SaleStore(settings.database_url)
    logger.info("Database initialized")
    seed_admin(app.state.user_store, settings)

    yield

    app.state.sale_store.close()
    app.state.user_store.close()
    logger.info("AutoSales API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="AutoSales API",
    description="Role-scoped user accounts and vehicle sale records.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "x-auth-token"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(sales_router, prefix="/api/vehiclesales", tags=["Vehicle Sales"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every error leaves the API as {"msg": ...} or {"errors": [...]}.
# ---------------------------------------------------------------------------


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Map the core.errors taxonomy to its status code and body."""
    if exc.status_code >= 500:
        logger.error("Service error on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with one entry per failing field, in the ValidationError shape."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        location = loc[0] if loc else "body"
        param = ".".join(loc[1:]) or location
        msg = err.get("msg", "Invalid value").removeprefix("Value error, ")
        errors.append(field_error(param, msg, location))
    return JSONResponse(status_code=400, content={"errors": errors})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework-raised HTTP errors (404 route not found, 405) in the same envelope."""
    return JSONResponse(status_code=exc.status_code, content={"msg": str(exc.detail)})


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected failures (storage, codec, bugs).

    The traceback goes to the server log only; the client gets a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    err = InternalError()
    return JSONResponse(status_code=err.status_code, content=err.to_body())


# ---------------------------------------------------------------------------
# Liveness
# ---------------------------------------------------------------------------


@app.get("/", include_in_schema=False)
async def root() -> PlainTextResponse:
    return PlainTextResponse("API Running...")


@app.get("/api/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=__version__)
