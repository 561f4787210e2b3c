from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.openapi.utils import get_openapi
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import time

from dailyrank.core.config import settings
from dailyrank.core.logging import setup_logging, get_logger, clear_request_context
from dailyrank.infrastructure.database.session import engine
from dailyrank.infrastructure.database import models  # noqa: F401
from dailyrank.infrastructure.database.session import Base
from dailyrank.domain.exceptions import (
    UserNotFoundError, InconsistentLedgerError, FinalizationConflictError
)
from dailyrank.api.dependencies.rate_limit import limiter
from dailyrank.api.routes import rating, tasks

# ──── Init ────────────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger(__name__)
Base.metadata.create_all(bind=engine)

# ──── App ─────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="DailyRank API",
    version=settings.APP_VERSION,
    description="""
## DailyRank: daily productivity rating

Every action (task created, completed, deleted; study, activity or expense logged)
refreshes today's **provisional** rating. The first action on a later day closes the
previous active day into the rating history, with an inactivity penalty for skipped days.

Authenticate with the `access_token` issued by the account service
(**Authorize** button, token only, without `Bearer`).
    """,
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    swagger_ui_parameters={
        "persistAuthorization": True,
        "displayRequestDuration": True,
    },
)

# ──── Middleware ──────────────────────────────────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logger(request: Request, call_next):
    clear_request_context()
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.info(
        "HTTP request",
        method=request.method,
        path=request.url.path,
        status=response.status_code,
        duration_ms=duration
    )
    return response


# ──── Errors ──────────────────────────────────────────────────────────────────
@app.exception_handler(UserNotFoundError)
async def user_not_found_handler(request: Request, exc: UserNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InconsistentLedgerError)
async def inconsistent_ledger_handler(request: Request, exc: InconsistentLedgerError):
    logger.error("Inconsistent rating ledger", user_id=exc.user_id,
                 day=str(exc.day) if exc.day else None, error=str(exc))
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(FinalizationConflictError)
async def finalization_conflict_handler(request: Request, exc: FinalizationConflictError):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "retry": True},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ──── OpenAPI with Bearer auth ────────────────────────────────────────────────
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    schema.setdefault("components", {})
    schema["components"]["securitySchemes"] = {
        "bearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }

    public_paths = {"/health", "/"}
    for path, path_data in schema["paths"].items():
        for operation in path_data.values():
            operation["security"] = [] if path in public_paths else [{"bearerAuth": []}]

    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = custom_openapi


# ──── Routers ─────────────────────────────────────────────────────────────────
app.include_router(rating.router, prefix="/api/v1")
app.include_router(tasks.router, prefix="/api/v1")


# ──── Health ──────────────────────────────────────────────────────────────────
@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok", "app": settings.APP_NAME, "version": settings.APP_VERSION}


@app.get("/", tags=["System"])
def root():
    return {
        "message": f"Welcome to {settings.APP_NAME} API",
        "docs": "/docs",
        "redoc": "/redoc",
        "version": settings.APP_VERSION,
        "timezone": settings.TIMEZONE,
    }
