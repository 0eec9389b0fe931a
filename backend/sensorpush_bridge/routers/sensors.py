"""
Sensors API Router
==================

HTTP endpoints the host application uses to look at the live sensor state
and to trigger a discovery by hand.

ALL ENDPOINTS:
-------------
GET    /api/sensors/                - Live state of every tracked sensor
GET    /api/sensors/gateways        - Gateways on the account
GET    /api/sensors/polling/status  - What the polling scheduler is doing
POST   /api/sensors/discover        - Re-discover sensors now (restarts polling)
GET    /api/sensors/{id}            - Live state of one sensor
"""

from fastapi import APIRouter, HTTPException, Depends

from sensorpush_bridge.exceptions import SensorPushError
from sensorpush_bridge.models import (
    DiscoveryResult,
    GatewayListResponse,
    PollingStatusResponse,
    SensorLiveState,
    SensorStateListResponse,
)


# Create the router - this groups all our sensor endpoints together
router = APIRouter(prefix="/api/sensors", tags=["sensors"])


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================

_sensor_manager = None  # This gets set when the app starts


def set_sensor_manager(manager):
    """Called when the app starts to give us the sensor manager."""
    global _sensor_manager
    _sensor_manager = manager


def get_sensor_manager():
    """Get the sensor manager for use in endpoints."""
    if _sensor_manager is None:
        raise HTTPException(status_code=500, detail="Server not fully started yet")
    return _sensor_manager


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/", response_model=SensorStateListResponse)
async def list_sensor_states(manager = Depends(get_sensor_manager)):
    """List the latest values of every tracked sensor."""
    states = manager.get_all_sensor_states()
    return SensorStateListResponse(sensors=states, total=len(states))


@router.get("/gateways", response_model=GatewayListResponse)
async def list_gateways(manager = Depends(get_sensor_manager)):
    """
    Ask SensorPush for the gateways on the account.

    This makes a live API call, so it counts against the rate limit.
    """
    try:
        gateways = await manager.api.list_gateways()
    except SensorPushError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return GatewayListResponse(gateways=list(gateways.values()), total=len(gateways))


@router.get("/polling/status", response_model=PollingStatusResponse)
async def polling_status(manager = Depends(get_sensor_manager)):
    """Show the scheduler state, cycle counter and last error."""
    return manager.status()


@router.post("/discover", response_model=DiscoveryResult)
async def discover_sensors(manager = Depends(get_sensor_manager)):
    """
    Run discovery right now.

    New active sensors start being tracked, inactive or deleted ones are
    dropped, and the polling cycle restarts from 0.
    """
    result = await manager.discover_devices()
    if result.status != "success":
        raise HTTPException(status_code=502, detail=result.error_message or "Discovery failed")
    return result


@router.get("/{sensor_id}", response_model=SensorLiveState)
async def get_sensor_state(sensor_id: str, manager = Depends(get_sensor_manager)):
    """Get the latest values of one tracked sensor."""
    state = manager.get_sensor_state(sensor_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Sensor not found")
    return state
