import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from starlette.middleware.gzip import GZipMiddleware

from fuelshare.config import settings
from fuelshare.api.v1 import auth, meters, fuel_fills, stays, prices, annual
from fuelshare.core.exceptions import (
    FuelShareError,
    ValidationFailure,
    NotFound,
    PermissionDenied,
    MeterConflict,
    AnnualClosingExists,
)
from fuelshare.database import close_db, init_db
from fuelshare.middleware.logging import LoggingMiddleware
from fuelshare.middleware.monitoring import MonitoringMiddleware
from fuelshare.middleware.request_id import RequestIDMiddleware, get_request_id
from fuelshare.monitoring import metrics
from fuelshare.services.health_service import get_detailed_health

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} starting ({settings.ENVIRONMENT})")
    if settings.DEBUG:
        await init_db()
    yield
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="""
    **FuelShare API** - heating oil and lodging cost sharing for a shared holiday house

    ## Features
		* **Stays** validated against every household's counter history
		* **Fuel fills** with consumption rates derived from consecutive fills
		* **Meter swaps** with carry-over readings
		* **Yearly summaries**, closings and Excel export
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "auth", "description": "Authentication operations"},
        {"name": "meters", "description": "Burner hour meters"},
        {"name": "fuel-fills", "description": "Heating oil deliveries"},
        {"name": "stays", "description": "Stays and their cost"},
        {"name": "prices", "description": "Yearly price tables"},
        {"name": "annual", "description": "Yearly summaries and closings"},
        {"name": "monitoring", "description": "System monitoring"},
    ],
    docs_url="/docs",
    redoc_url="/redoc" if settings.DEBUG else None,
)


# =====================================
# Domain errors
# =====================================
_ERROR_STATUS = (
    (ValidationFailure, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (MeterConflict, status.HTTP_409_CONFLICT),
    (AnnualClosingExists, status.HTTP_409_CONFLICT),
)


@app.exception_handler(FuelShareError)
async def fuelshare_error_handler(request: Request, exc: FuelShareError):
    status_code = next(
        (code for error_type, code in _ERROR_STATUS if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST
    )
    if isinstance(exc, ValidationFailure):
        content = {"detail": exc.rejection.message, "rejection": exc.rejection.as_dict()}
    else:
        content = {"detail": str(exc)}
    logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc} [{get_request_id()}]")
    return JSONResponse(status_code=status_code, content=content)


# =====================================
# Configure Middleware Stack
# =====================================
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
    max_age=3600,
)

app.add_middleware(MonitoringMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

# Include routers
app.include_router(auth.router, prefix=f"{settings.API_V1_PREFIX}/auth", tags=["auth"])
app.include_router(meters.router, prefix=f"{settings.API_V1_PREFIX}/meters", tags=["meters"])
app.include_router(fuel_fills.router, prefix=f"{settings.API_V1_PREFIX}/fuel-fills", tags=["fuel-fills"])
app.include_router(stays.router, prefix=f"{settings.API_V1_PREFIX}/stays", tags=["stays"])
app.include_router(prices.router, prefix=f"{settings.API_V1_PREFIX}/prices", tags=["prices"])
app.include_router(annual.router, prefix=f"{settings.API_V1_PREFIX}/annual", tags=["annual"])

# Monitoring endpoints (internal use)
if settings.EXPOSE_METRICS:
    app.include_router(
        metrics.router,
        prefix="/internal",
        tags=["monitoring"]
    )


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.APP_VERSION
    }


@app.get("/internal/health", tags=["monitoring"])
async def detailed_health_check():
    return await get_detailed_health()
