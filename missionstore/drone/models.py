from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any


class DroneStatus(str, Enum):
    IDLE = "idle"
    FLYING = "flying"
    LANDING = "landing"
    CHARGING = "charging"
    MAINTENANCE = "maintenance"
    ERROR = "error"


@dataclass
class Coordinate:
    lat: float
    lon: float
    alt: Optional[float] = None  # meters


@dataclass
class WaypointRecord:
    drone_id: int
    sequence_number: int
    command: int
    param1: float
    param2: float
    param3: float
    param4: float
    latitude: float
    longitude: float
    altitude: float
    auto_continue: bool
    source_file: str
    created_at: Optional[datetime] = None  # set by the store on insert

    def as_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        if self.created_at is not None:
            d["created_at"] = self.created_at.isoformat()
        return d


@dataclass
class MissionResult:
    drone_id: int
    filename: str
    waypoint_count: int
    waypoints: list[WaypointRecord]
    total_distance_m: float = 0.0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "drone_id": self.drone_id,
            "filename": self.filename,
            "waypoint_count": self.waypoint_count,
            "total_distance_m": self.total_distance_m,
            "waypoints": [w.as_dict() for w in self.waypoints],
        }
