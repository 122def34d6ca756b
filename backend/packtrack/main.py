import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from packtrack.config import settings
from packtrack.database import Database
from packtrack.middleware.exceptions import register_exception_handlers
from packtrack.middleware.security import SecurityHeadersMiddleware
from packtrack.routers import auth, config, dashboard, health, loads, packaging, planner, reports, sites
from packtrack.utils.redis_client import close_redis

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("packtrack")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests install their own Database before the app starts
    db = getattr(app.state, "db", None) or Database()
    db.open()
    app.state.db = db
    logger.info(f"PackTrack starting ({settings.environment})")
    try:
        yield
    finally:
        await db.close()
        await close_redis()
        logger.info("PackTrack stopped")


app = FastAPI(
    title="PackTrack",
    description="Returnable packaging tracking across farms, depots and markets",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (outermost first) ─────────────────────────────
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(sites.router, prefix="/api/sites", tags=["sites"])
app.include_router(config.router, prefix="/api/config", tags=["config"])
app.include_router(packaging.router, prefix="/api/packaging", tags=["packaging"])
app.include_router(loads.router, prefix="/api/loads", tags=["loads"])
app.include_router(planner.router, prefix="/api/planner", tags=["planner"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])
app.include_router(reports.router, prefix="/api/reports", tags=["reports"])
