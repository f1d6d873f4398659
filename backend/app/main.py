"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import settings
from app.database import Base, SessionLocal, engine
from app.errors import DomainError

# Import routers
from app.routers import users, capacity_tiers, quotas, events, guests, check_in, audit, reports, stats
from app.services import user_service

# Import all models so Base.metadata knows about them
from app.models.user import User                      # noqa: F401
from app.models.capacity_tier import CapacityTier     # noqa: F401
from app.models.tier_quota import UserTierQuota       # noqa: F401
from app.models.event import Event, EventOrganizer    # noqa: F401
from app.models.guest import Guest                    # noqa: F401
from app.models.audit_log import AuditLog             # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Event Access Manager",
    description="Event access management — capacity tiers, manager quotas, guest lists and door check-in",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
def domain_error_handler(request: Request, exc: DomainError):
    """Translate service-layer errors into their HTTP status."""
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.to_dict()})


# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(capacity_tiers.router, prefix="/api/capacity-tiers", tags=["CapacityTiers"])
app.include_router(quotas.router, prefix="/api/quotas", tags=["Quotas"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(guests.router, prefix="/api", tags=["Guests"])
app.include_router(check_in.router, prefix="/api/check-in", tags=["CheckIn"])
app.include_router(audit.router, prefix="/api/audit", tags=["Audit"])
app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])
app.include_router(stats.router, prefix="/api/stats", tags=["Stats"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode) and seed the system owner."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user_service.seed_super_admin(db)
    finally:
        db.close()


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
