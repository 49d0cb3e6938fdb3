"""
Driver Monitoring Router
Start/stop the monitoring session, read the latest state and frame, and
manage the stored driver profile.
"""

import logging
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from app.models.schemas import ActionResponse, MonitoringStateResponse
from app.services.monitoring_service import get_monitoring_service

logger = logging.getLogger("drowsyguard.api")

router = APIRouter(prefix="/api/drivermonitoring", tags=["Driver Monitoring"])


@router.post("/start", response_model=ActionResponse)
async def start_monitoring():
    service = get_monitoring_service()
    try:
        started = await service.start()
    except Exception as e:
        logger.error(f"Failed to start monitoring: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to start monitoring: {e}")

    if not started:
        return ActionResponse(success=True, message="Monitoring is already running")
    return ActionResponse(success=True, message="Monitoring started")


@router.post("/stop", response_model=ActionResponse)
async def stop_monitoring():
    service = get_monitoring_service()
    try:
        stopped = await service.stop()
    except Exception as e:
        logger.error(f"Failed to stop monitoring: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to stop monitoring: {e}")

    if not stopped:
        return ActionResponse(success=True, message="Monitoring is not running")
    return ActionResponse(success=True, message="Monitoring stopped")


@router.get("/state", response_model=MonitoringStateResponse)
def get_state():
    """Current state without the frame bytes"""
    return get_monitoring_service().state_dict()


@router.get("/frame")
def get_frame():
    frame = get_monitoring_service().current_frame
    if not frame:
        raise HTTPException(status_code=404, detail="No frame available")
    return Response(content=frame, media_type="image/jpeg")


@router.post("/reset-interventions", response_model=ActionResponse)
def reset_interventions(driver_id: str = Query(default="default")):
    service = get_monitoring_service()
    try:
        service.interventions.reset_effectiveness(driver_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ActionResponse(
        success=True,
        message=f"Intervention effectiveness scores reset for driver {driver_id}",
    )


@router.get("/profile")
def get_profile():
    """Stored profile of the current driver"""
    profile = get_monitoring_service().interventions.get_profile()
    return profile.model_dump(mode="json")

