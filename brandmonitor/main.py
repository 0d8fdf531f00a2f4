import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from brandmonitor.api.v1.router import api_v1_router
from brandmonitor.core.config import settings, validate_settings_for_production
from brandmonitor.core.logging import setup_logging
from brandmonitor.core.metrics import PrometheusMiddleware, metrics_response
from brandmonitor.core.rate_limit import limiter
from brandmonitor.core.sentry import init_sentry
from brandmonitor.db.postgres import engine
from brandmonitor.gateway.base import ClientRegistry
from brandmonitor.gateway.registry import available_providers

# Configure logging before anything else
setup_logging()
init_sentry()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    validate_settings_for_production()
    app.state.clients = ClientRegistry(timeout=settings.provider_timeout)
    logger.info("Starting brand monitor (providers: %s)", ", ".join(available_providers()))

    yield

    # Shutdown
    await app.state.clients.aclose()
    await engine.dispose()
    logger.info("Brand monitor shut down")


app = FastAPI(
    title="Brand Monitor",
    description="Brand visibility monitoring across LLM providers",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.app_debug else None,
    redoc_url="/api/redoc" if settings.app_debug else None,
)


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("Unhandled %s on %s %s:\n%s", type(exc).__name__, request.method, request.url.path, "".join(tb))
    return JSONResponse(status_code=500, content={"detail": f"{type(exc).__name__}: {exc}"})


# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(PrometheusMiddleware)

# CORS: parse allowed_origins from settings (comma-separated)
_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router)


@app.get("/api/v1/health")
async def health():
    return {"status": "ok", "providers": available_providers()}


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_response()
