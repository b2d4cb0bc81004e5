from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from missionstore.errors import (
    FormatError,
    NotFoundError,
    StorageError,
    UploadError,
    ValidationError,
)
from missionstore.service import FleetService, Outcome

router = APIRouter(prefix="/drones", tags=["drones"])
files_router = APIRouter(prefix="/waypoint-files", tags=["waypoint-files"])


# --------------------
# Schemas
# --------------------
class StatusIn(BaseModel):
    status: str


class BatteryIn(BaseModel):
    battery_level: int


class PositionIn(BaseModel):
    latitude: float
    longitude: float
    altitude: float


def get_service(request: Request) -> FleetService:
    return request.app.state.service


def _status_code(outcome: Outcome) -> int:
    exc = outcome.exception
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (ValidationError, FormatError, UploadError)):
        return 400
    if isinstance(exc, StorageError):
        return 500
    return 400


def _respond(outcome: Outcome, *, created: bool = False, message: Optional[str] = None, count: bool = False) -> JSONResponse:
    if not outcome.success:
        return JSONResponse(outcome.as_dict(), status_code=_status_code(outcome))
    body: Dict[str, Any] = outcome.as_dict()
    if count:
        body["count"] = len(outcome.data)
    if message:
        body["message"] = message
    return JSONResponse(body, status_code=201 if created else 200)


# --------------------
# Drone endpoints
# --------------------
@router.get("")
async def list_drones(service: FleetService = Depends(get_service)):
    return _respond(await service.list_drones(), count=True)


@router.post("")
async def create_drone(
    payload: Dict[str, Any] = Body(...),
    service: FleetService = Depends(get_service),
):
    return _respond(await service.create_drone(payload), created=True)


@router.get("/{drone_id}")
async def get_drone(drone_id: int, service: FleetService = Depends(get_service)):
    return _respond(await service.get_drone(drone_id))


@router.put("/{drone_id}")
async def update_drone(
    drone_id: int,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    service: FleetService = Depends(get_service),
):
    return _respond(await service.update_drone(drone_id, payload or {}))


@router.delete("/{drone_id}")
async def delete_drone(drone_id: int, service: FleetService = Depends(get_service)):
    return _respond(await service.delete_drone(drone_id), message="Drone deleted successfully")


@router.get("/{drone_id}/status")
async def get_drone_status(drone_id: int, service: FleetService = Depends(get_service)):
    return _respond(await service.get_drone_status(drone_id))


@router.put("/{drone_id}/status")
async def update_drone_status(
    drone_id: int, payload: StatusIn, service: FleetService = Depends(get_service)
):
    return _respond(await service.update_drone_status(drone_id, payload.status))


@router.put("/{drone_id}/battery")
async def update_drone_battery(
    drone_id: int, payload: BatteryIn, service: FleetService = Depends(get_service)
):
    return _respond(await service.update_drone_battery(drone_id, payload.battery_level))


@router.put("/{drone_id}/position")
async def update_drone_position(
    drone_id: int, payload: PositionIn, service: FleetService = Depends(get_service)
):
    return _respond(
        await service.update_drone_position(
            drone_id, payload.latitude, payload.longitude, payload.altitude
        )
    )


# --------------------
# Waypoint endpoints
# --------------------
@router.get("/{drone_id}/waypoints")
async def list_waypoints(drone_id: int, service: FleetService = Depends(get_service)):
    return _respond(await service.list_waypoints(drone_id), count=True)


@router.get("/{drone_id}/waypoints/statistics")
async def waypoint_statistics(drone_id: int, service: FleetService = Depends(get_service)):
    return _respond(await service.mission_statistics(drone_id))


@router.post("/{drone_id}/waypoints/upload")
async def upload_waypoints(
    drone_id: int,
    waypoint_file: Optional[UploadFile] = File(default=None),
    strict: Optional[bool] = Query(default=None),
    service: FleetService = Depends(get_service),
):
    if waypoint_file is None:
        return JSONResponse({"success": False, "error": "No waypoint file uploaded"}, status_code=400)
    try:
        content = await waypoint_file.read()
    except OSError:
        content = None
    outcome = await service.upload_waypoint_file(
        drone_id, content, waypoint_file.filename, strict=strict
    )
    return _respond(outcome, created=True, message="Waypoint file uploaded and parsed successfully")


@router.post("/{drone_id}/waypoints/load/{filename}")
async def load_waypoints(
    drone_id: int,
    filename: str,
    strict: Optional[bool] = Query(default=None),
    service: FleetService = Depends(get_service),
):
    outcome = await service.load_waypoint_file(drone_id, filename, strict=strict)
    return _respond(outcome, created=True, message="Waypoint file loaded successfully")


@router.delete("/{drone_id}/waypoints")
async def clear_waypoints(drone_id: int, service: FleetService = Depends(get_service)):
    return _respond(await service.clear_waypoints(drone_id), message="Waypoints cleared successfully")


# --------------------
# Mission file listing
# --------------------
@files_router.get("")
async def list_waypoint_files(service: FleetService = Depends(get_service)):
    return _respond(await service.list_waypoint_files(), count=True)
