"""
DrowsyGuard - FastAPI Application Entry Point
Real-time driver fatigue monitoring with adaptive interventions
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.utils.logger import setup_logging

# Setup logging
setup_logging("DEBUG" if settings.DEBUG else "INFO")
logger = logging.getLogger("drowsyguard.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle manager"""
    logger.info("=" * 60)
    logger.info("  DrowsyGuard Driver Monitoring - Starting")
    logger.info("=" * 60)

    from app.services.profile_storage import get_profile_storage
    storage = get_profile_storage()
    if settings.RESET_PROFILE_ON_STARTUP:
        storage.delete_profile(settings.DEFAULT_DRIVER_ID)
        logger.info(f"Profile for driver '{settings.DEFAULT_DRIVER_ID}' reset on startup")

    logger.info(f"Environment: {settings.APP_ENV}")
    logger.info(f"CORS Origins: {settings.cors_origins_list}")
    logger.info(f"Profiles: {settings.profile_path}")
    logger.info("DrowsyGuard is ready!")
    logger.info("=" * 60)

    yield

    logger.info("DrowsyGuard shutting down...")
    from app.services.monitoring_service import get_monitoring_service
    service = get_monitoring_service()
    await service.stop()
    await service.interventions.wait_for_speech()


# Create FastAPI app
app = FastAPI(
    title="DrowsyGuard - Driver Fatigue Monitoring",
    description="Detects driver sleepiness, yawning, distraction and absence, and adapts interventions per driver",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
from app.routers import monitoring, websocket

app.include_router(monitoring.router)
app.include_router(websocket.router)


# Health check endpoint
@app.get("/health")
def health_check():
    from app.services.monitoring_service import get_monitoring_service
    from app.services.websocket_manager import ws_manager
    return {
        "status": "healthy",
        "service": "DrowsyGuard",
        "version": "1.0.0",
        "monitoring": get_monitoring_service().is_running,
        "clients": ws_manager.total_connections,
    }


@app.get("/api/info")
def api_info():
    return {
        "name": "DrowsyGuard API",
        "version": "1.0.0",
        "description": "Driver Fatigue Monitoring Platform",
        "endpoints": {
            "monitoring": "/api/drivermonitoring",
            "websocket_monitoring": "/ws/monitoring",
            "health": "/health",
        }
    }
