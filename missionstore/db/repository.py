from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Iterable, List, Mapping, Sequence
import logging

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .locks import DroneLocks
from .models import Drone, Waypoint
from .session import Database
from missionstore.drone.models import DroneStatus, WaypointRecord
from missionstore.drone.status import StatusPolicy, parse_status
from missionstore.errors import (
    DroneNotFound,
    MissingRequiredField,
    StorageError,
    ValidationError,
)
from missionstore.utils.geo import path_distance_m

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "model", "serial_number")

# updatable column -> coercion applied to caller input
UPDATABLE_FIELDS = {
    "name": str,
    "model": str,
    "serial_number": str,
    "status": lambda v: parse_status(v).value,
    "battery_level": int,
    "current_latitude": float,
    "current_longitude": float,
    "current_altitude": float,
    "max_flight_time": int,
    "max_speed": float,
}

DRONE_DEFAULTS = {
    "status": DroneStatus.IDLE.value,
    "battery_level": 100,
    "max_flight_time": 30,
    "max_speed": 15,
}


@contextmanager
def _storage_errors(action: str):
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Storage failure while trying to %s: %s", action, e)
        raise StorageError(f"Failed to {action}: {e.__class__.__name__}") from e


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def _coerce(fields: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in fields.items():
        try:
            out[key] = UPDATABLE_FIELDS[key](value)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid value for {key}: {value!r}") from e
    return out


def _drone_to_dict(d: Drone, waypoint_count: int, last_waypoint_update: Optional[datetime]) -> Dict[str, Any]:
    return {
        "id": d.id,
        "name": d.name,
        "model": d.model,
        "serial_number": d.serial_number,
        "status": d.status,
        "battery_level": d.battery_level,
        "current_latitude": d.current_latitude,
        "current_longitude": d.current_longitude,
        "current_altitude": d.current_altitude,
        "max_flight_time": d.max_flight_time,
        "max_speed": d.max_speed,
        "created_at": _iso(d.created_at),
        "updated_at": _iso(d.updated_at),
        "waypoint_count": int(waypoint_count or 0),
        "last_waypoint_update": _iso(last_waypoint_update),
    }


def _waypoint_to_record(w: Waypoint) -> WaypointRecord:
    return WaypointRecord(
        drone_id=w.drone_id,
        sequence_number=w.sequence_number,
        command=w.command,
        param1=w.param1,
        param2=w.param2,
        param3=w.param3,
        param4=w.param4,
        latitude=w.latitude,
        longitude=w.longitude,
        altitude=w.altitude,
        auto_continue=bool(w.auto_continue),
        source_file=w.source_file,
        created_at=w.created_at,
    )


class _Repository:
    def __init__(self, db: Database, locks: DroneLocks):
        self._db = db
        self._session_factory = db.session_factory
        self._locks = locks

    async def _lock_drone_row(self, s: AsyncSession, drone_id: int) -> Drone:
        """Load the drone inside the current transaction, row-locked where the backend allows it."""
        q = select(Drone).where(Drone.id == drone_id)
        if self._db.supports_row_locks:
            q = q.with_for_update()
        drone = (await s.execute(q)).scalar_one_or_none()
        if drone is None:
            raise DroneNotFound(drone_id)
        return drone


class DroneRepository(_Repository):
    """Drone lifecycle plus status/battery/position writes."""

    def __init__(self, db: Database, locks: DroneLocks, policy: Optional[StatusPolicy] = None):
        super().__init__(db, locks)
        self.policy = policy or StatusPolicy()

    def _summary_query(self):
        return (
            select(Drone, func.count(Waypoint.id), func.max(Waypoint.created_at))
            .outerjoin(Waypoint, Waypoint.drone_id == Drone.id)
            .group_by(Drone.id)
        )

    async def list_drones(self) -> List[Dict[str, Any]]:
        with _storage_errors("list drones"):
            async with self._session_factory() as s:
                q = self._summary_query().order_by(Drone.created_at.desc(), Drone.id.desc())
                rows = (await s.execute(q)).all()
        return [_drone_to_dict(d, count, last) for d, count, last in rows]

    async def get_drone(self, drone_id: int) -> Dict[str, Any]:
        with _storage_errors("read drone"):
            async with self._session_factory() as s:
                row = (await s.execute(self._summary_query().where(Drone.id == drone_id))).first()
        if row is None:
            raise DroneNotFound(drone_id)
        d, count, last = row
        return _drone_to_dict(d, count, last)

    async def create_drone(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        for field in REQUIRED_FIELDS:
            value = data.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise MissingRequiredField(field)

        fields = {**DRONE_DEFAULTS}
        fields.update({k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None})
        fields = _coerce(fields)

        try:
            with _storage_errors("create drone"):
                async with self._session_factory() as s:
                    drone = Drone(**fields)
                    s.add(drone)
                    await s.flush()  # populates drone.id
                    drone_id = drone.id
                    await s.commit()
        except StorageError as e:
            if isinstance(e.__cause__, IntegrityError):
                raise StorageError(
                    f"Failed to create drone: serial number {fields['serial_number']!r} may already be registered"
                ) from e.__cause__
            raise

        logger.info("Created drone %s (%s, serial %s)", drone_id, fields["model"], fields["serial_number"])
        return await self.get_drone(drone_id)

    async def update_drone(self, drone_id: int, data: Mapping[str, Any]) -> Dict[str, Any]:
        fields = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}
        if not fields:
            return await self.get_drone(drone_id)
        fields = _coerce(fields)

        if "status" in fields:
            async with self._locks.hold(drone_id):
                await self._apply(drone_id, fields, "update drone")
        else:
            await self._apply(drone_id, fields, "update drone")
        return await self.get_drone(drone_id)

    async def _apply(self, drone_id: int, fields: Dict[str, Any], action: str) -> None:
        with _storage_errors(action):
            async with self._session_factory() as s, s.begin():
                drone = await self._lock_drone_row(s, drone_id)
                if "status" in fields:
                    fields["status"] = self.policy.check(drone.status, fields["status"]).value
                for key, value in fields.items():
                    setattr(drone, key, value)
        logger.debug("Drone %s: %s %s", drone_id, action, sorted(fields))

    async def update_status(self, drone_id: int, status) -> Dict[str, Any]:
        target = parse_status(status)
        async with self._locks.hold(drone_id):
            await self._apply(drone_id, {"status": target.value}, "update status")
        logger.info("Drone %s status -> %s", drone_id, target.value)
        return await self.get_drone(drone_id)

    async def _write(self, drone_id: int, values: Dict[str, Any], action: str) -> None:
        with _storage_errors(action):
            async with self._session_factory() as s:
                res = await s.execute(
                    update(Drone).where(Drone.id == drone_id).values(**values, updated_at=func.now())
                )
                await s.commit()
        if res.rowcount == 0:
            raise DroneNotFound(drone_id)

    async def update_battery(self, drone_id: int, battery_level: int) -> Dict[str, Any]:
        await self._write(drone_id, _coerce({"battery_level": battery_level}), "update battery")
        return await self.get_drone(drone_id)

    async def update_position(self, drone_id: int, latitude: float, longitude: float, altitude: float) -> Dict[str, Any]:
        values = _coerce({
            "current_latitude": latitude,
            "current_longitude": longitude,
            "current_altitude": altitude,
        })
        await self._write(drone_id, values, "update position")
        return await self.get_drone(drone_id)

    async def delete_drone(self, drone_id: int) -> int:
        """Delete the drone and its mission in one transaction. Returns the number of waypoints removed."""
        async with self._locks.hold(drone_id):
            with _storage_errors("delete drone"):
                async with self._session_factory() as s, s.begin():
                    await self._lock_drone_row(s, drone_id)
                    res = await s.execute(delete(Waypoint).where(Waypoint.drone_id == drone_id))
                    await s.execute(delete(Drone).where(Drone.id == drone_id))
        logger.info("Deleted drone %s with %s waypoints", drone_id, res.rowcount)
        return res.rowcount

    async def get_status(self, drone_id: int) -> Dict[str, Any]:
        d = await self.get_drone(drone_id)
        return {
            "drone_id": d["id"],
            "name": d["name"],
            "status": d["status"],
            "battery_level": d["battery_level"],
            "current_position": {
                "latitude": d["current_latitude"],
                "longitude": d["current_longitude"],
                "altitude": d["current_altitude"],
            },
            "waypoint_count": d["waypoint_count"],
            "last_update": d["last_waypoint_update"],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


class WaypointRepository(_Repository):
    """The per-drone mission: atomic replace, clear, ordered reads."""

    async def list(self, drone_id: int) -> List[WaypointRecord]:
        with _storage_errors("list waypoints"):
            async with self._session_factory() as s:
                q = (
                    select(Waypoint)
                    .where(Waypoint.drone_id == drone_id)
                    .order_by(Waypoint.sequence_number.asc())
                )
                rows = (await s.execute(q)).scalars().all()
        return [_waypoint_to_record(w) for w in rows]

    async def count(self, drone_id: int) -> int:
        with _storage_errors("count waypoints"):
            async with self._session_factory() as s:
                n = await s.scalar(
                    select(func.count()).select_from(Waypoint).where(Waypoint.drone_id == drone_id)
                )
        return int(n or 0)

    async def replace(self, drone_id: int, waypoints: Iterable[WaypointRecord]) -> List[WaypointRecord]:
        """
        Swap the drone's whole mission for ``waypoints`` in one transaction.

        Readers see either the old mission or the new one. Fails with
        DroneNotFound if the drone does not exist (or was deleted first).
        """
        records = list(waypoints)
        seqs = [w.sequence_number for w in records]
        if seqs != list(range(len(records))):
            raise ValidationError("Waypoint sequence numbers must be contiguous from 0")

        now = datetime.now(timezone.utc)
        async with self._locks.hold(drone_id):
            with _storage_errors("replace mission"):
                async with self._session_factory() as s, s.begin():
                    await self._lock_drone_row(s, drone_id)
                    removed = await s.execute(delete(Waypoint).where(Waypoint.drone_id == drone_id))
                    s.add_all([
                        Waypoint(
                            drone_id=drone_id,
                            sequence_number=w.sequence_number,
                            command=w.command,
                            param1=w.param1,
                            param2=w.param2,
                            param3=w.param3,
                            param4=w.param4,
                            latitude=w.latitude,
                            longitude=w.longitude,
                            altitude=w.altitude,
                            auto_continue=bool(w.auto_continue),
                            source_file=w.source_file,
                            created_at=now,
                        )
                        for w in records
                    ])

        logger.info(
            "Drone %s mission replaced: %s -> %s waypoints",
            drone_id, removed.rowcount, len(records),
        )
        for w in records:
            w.drone_id = drone_id
            w.created_at = now
        return records

    async def clear(self, drone_id: int) -> int:
        async with self._locks.hold(drone_id):
            with _storage_errors("clear mission"):
                async with self._session_factory() as s, s.begin():
                    res = await s.execute(delete(Waypoint).where(Waypoint.drone_id == drone_id))
        logger.info("Cleared %s waypoints for drone %s", res.rowcount, drone_id)
        return res.rowcount

    async def statistics(self, drone_id: int) -> Dict[str, Any]:
        waypoints = await self.list(drone_id)
        return mission_statistics(drone_id, waypoints)


def mission_statistics(drone_id: int, waypoints: Sequence[WaypointRecord]) -> Dict[str, Any]:
    if not waypoints:
        return {
            "drone_id": drone_id,
            "total_waypoints": 0,
            "min_latitude": None,
            "max_latitude": None,
            "min_longitude": None,
            "max_longitude": None,
            "min_altitude": None,
            "max_altitude": None,
            "avg_altitude": None,
            "source_file": None,
            "loaded_at": None,
            "total_distance_m": 0.0,
        }

    lats = [w.latitude for w in waypoints]
    lons = [w.longitude for w in waypoints]
    alts = [w.altitude for w in waypoints]
    return {
        "drone_id": drone_id,
        "total_waypoints": len(waypoints),
        "min_latitude": min(lats),
        "max_latitude": max(lats),
        "min_longitude": min(lons),
        "max_longitude": max(lons),
        "min_altitude": min(alts),
        "max_altitude": max(alts),
        "avg_altitude": sum(alts) / len(alts),
        "source_file": waypoints[0].source_file,
        "loaded_at": _iso(waypoints[0].created_at),
        "total_distance_m": path_distance_m(waypoints),
    }
