"""
Caller-facing operations.

Each method maps to one registry or workflow call and returns an Outcome
instead of raising, so transport layers only need to translate
``error_kind`` into their own framing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from missionstore.config import Settings
from missionstore.db.locks import DroneLocks
from missionstore.db.repository import DroneRepository, WaypointRepository
from missionstore.db.session import Database
from missionstore.drone.status import StatusPolicy
from missionstore.errors import MissionStoreError
from missionstore.mission.files import MissionFileStore
from missionstore.mission.workflow import MissionWorkflow

logger = logging.getLogger(__name__)


@dataclass
class Outcome:
    success: bool
    data: Any = None
    error_kind: Optional[str] = None
    error: Optional[str] = None
    # error class, for transports that map by family (NotFoundError, ...)
    exception: Optional[MissionStoreError] = None

    @classmethod
    def ok(cls, data: Any = None) -> "Outcome":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, exc: MissionStoreError) -> "Outcome":
        return cls(success=False, error_kind=exc.kind, error=exc.message, exception=exc)

    def as_dict(self) -> dict:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error_kind": self.error_kind, "error": self.error}


def _plain(value: Any) -> Any:
    if hasattr(value, "as_dict"):
        return value.as_dict()
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


class FleetService:
    def __init__(self, drones: DroneRepository, workflow: MissionWorkflow):
        self.drones = drones
        self.workflow = workflow

    @classmethod
    def from_settings(cls, db: Database, settings: Settings) -> "FleetService":
        locks = DroneLocks()
        drones = DroneRepository(db, locks, StatusPolicy(enforce=settings.enforce_status_transitions))
        waypoints = WaypointRepository(db, locks)
        files = MissionFileStore(settings.mission_dir, settings.mission_file_extension)
        workflow = MissionWorkflow(waypoints, files, strict_parsing=settings.strict_parsing)
        return cls(drones, workflow)

    async def _run(self, op: str, call: Callable[[], Awaitable[Any]]) -> Outcome:
        try:
            return Outcome.ok(_plain(await call()))
        except MissionStoreError as e:
            logger.warning("%s failed: %s: %s", op, e.kind, e.message)
            return Outcome.fail(e)

    # ---- drones ----

    async def list_drones(self) -> Outcome:
        return await self._run("list_drones", self.drones.list_drones)

    async def get_drone(self, drone_id: int) -> Outcome:
        return await self._run("get_drone", lambda: self.drones.get_drone(drone_id))

    async def create_drone(self, data: Mapping[str, Any]) -> Outcome:
        return await self._run("create_drone", lambda: self.drones.create_drone(data))

    async def update_drone(self, drone_id: int, data: Mapping[str, Any]) -> Outcome:
        return await self._run("update_drone", lambda: self.drones.update_drone(drone_id, data))

    async def delete_drone(self, drone_id: int) -> Outcome:
        async def _delete():
            removed = await self.drones.delete_drone(drone_id)
            return {"drone_id": drone_id, "waypoints_removed": removed}
        return await self._run("delete_drone", _delete)

    async def get_drone_status(self, drone_id: int) -> Outcome:
        return await self._run("get_drone_status", lambda: self.drones.get_status(drone_id))

    async def update_drone_status(self, drone_id: int, status: str) -> Outcome:
        return await self._run("update_drone_status", lambda: self.drones.update_status(drone_id, status))

    async def update_drone_battery(self, drone_id: int, battery_level: int) -> Outcome:
        return await self._run(
            "update_drone_battery", lambda: self.drones.update_battery(drone_id, battery_level)
        )

    async def update_drone_position(
        self, drone_id: int, latitude: float, longitude: float, altitude: float
    ) -> Outcome:
        return await self._run(
            "update_drone_position",
            lambda: self.drones.update_position(drone_id, latitude, longitude, altitude),
        )

    # ---- missions ----

    async def list_waypoints(self, drone_id: int) -> Outcome:
        return await self._run("list_waypoints", lambda: self.workflow.waypoints.list(drone_id))

    async def upload_waypoint_file(
        self,
        drone_id: int,
        content: Optional[Union[bytes, str]],
        filename: Optional[str],
        *,
        strict: Optional[bool] = None,
    ) -> Outcome:
        return await self._run(
            "upload_waypoint_file",
            lambda: self.workflow.upload_mission(drone_id, content, filename, strict=strict),
        )

    async def load_waypoint_file(
        self, drone_id: int, filename: str, *, strict: Optional[bool] = None
    ) -> Outcome:
        return await self._run(
            "load_waypoint_file",
            lambda: self.workflow.load_mission(drone_id, filename, strict=strict),
        )

    async def clear_waypoints(self, drone_id: int) -> Outcome:
        async def _clear():
            removed = await self.workflow.clear_mission(drone_id)
            return {"drone_id": drone_id, "waypoints_removed": removed}
        return await self._run("clear_waypoints", _clear)

    async def mission_statistics(self, drone_id: int) -> Outcome:
        return await self._run("mission_statistics", lambda: self.workflow.mission_statistics(drone_id))

    async def list_waypoint_files(self) -> Outcome:
        return await self._run("list_waypoint_files", self.workflow.available_files)
