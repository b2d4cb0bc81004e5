from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from missionstore.db.repository import WaypointRepository
from missionstore.drone.models import MissionResult
from missionstore.errors import UploadError
from missionstore.mission.files import MissionFileStore
from missionstore.mission.parser import parse_waypoint_file
from missionstore.utils.geo import path_distance_m

logger = logging.getLogger(__name__)


class MissionWorkflow:
    """
    Upload-or-load -> parse -> atomic replace.

    Parsing happens before anything touches the database, so a bad file
    never disturbs the drone's current mission. Uploaded bytes are written to
    the file store first and stay there even when parsing fails.
    """

    def __init__(
        self,
        waypoints: WaypointRepository,
        files: MissionFileStore,
        *,
        strict_parsing: bool = False,
    ):
        self.waypoints = waypoints
        self.files = files
        self.strict_parsing = strict_parsing

    async def upload_mission(
        self,
        drone_id: int,
        content: Optional[Union[bytes, str]],
        filename: Optional[str],
        *,
        strict: Optional[bool] = None,
    ) -> MissionResult:
        if content is None:
            raise UploadError("File upload failed")
        if not filename:
            raise UploadError("Uploaded file has no name")
        data = content.encode("utf-8") if isinstance(content, str) else content

        await self.files.write(filename, data)
        return await self._ingest(drone_id, data, filename, strict)

    async def load_mission(
        self, drone_id: int, filename: str, *, strict: Optional[bool] = None
    ) -> MissionResult:
        data = await self.files.read(filename)
        return await self._ingest(drone_id, data, filename, strict)

    async def _ingest(
        self, drone_id: int, data: bytes, filename: str, strict: Optional[bool]
    ) -> MissionResult:
        strict = self.strict_parsing if strict is None else strict
        parsed = parse_waypoint_file(data, drone_id, filename, strict=strict)
        stored = await self.waypoints.replace(drone_id, parsed)
        result = MissionResult(
            drone_id=drone_id,
            filename=filename,
            waypoint_count=len(stored),
            waypoints=stored,
            total_distance_m=path_distance_m(stored),
        )
        logger.info(
            "Loaded %s for drone %s: %s waypoints, %.2f m",
            filename, drone_id, result.waypoint_count, result.total_distance_m,
        )
        return result

    async def clear_mission(self, drone_id: int) -> int:
        return await self.waypoints.clear(drone_id)

    async def mission_statistics(self, drone_id: int) -> Dict[str, Any]:
        return await self.waypoints.statistics(drone_id)

    async def available_files(self) -> List[Dict[str, Any]]:
        return await self.files.list_files()
