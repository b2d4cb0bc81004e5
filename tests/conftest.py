"""Shared fixtures: a throwaway SQLite database, repositories and sample files."""

from __future__ import annotations

from typing import Callable, List

import pytest

from missionstore.config import Settings
from missionstore.db.locks import DroneLocks
from missionstore.db.repository import DroneRepository, WaypointRepository
from missionstore.db.session import Database
from missionstore.drone.models import WaypointRecord
from missionstore.drone.status import StatusPolicy
from missionstore.mission.files import MissionFileStore
from missionstore.mission.workflow import MissionWorkflow
from missionstore.service import FleetService

SAMPLE_MISSION = """QGC WPL 110
0\t1\t0\t16\t0\t0\t0\t0\t47.397742\t8.545594\t488.0\t1
1\t0\t3\t22\t15.0\t0\t0\t0\t47.397742\t8.545594\t10.0\t1
2\t0\t3\t16\t0\t2.0\t0\t0\t47.398500\t8.546500\t20.0\t1
3\t0\t3\t21\t0\t0\t0\t0\t47.399000\t8.547000\t0.0\t0
"""


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'missionstore.db'}",
        mission_dir=tmp_path / "qgc_waypoints",
    )


@pytest.fixture
async def db(settings):
    database = Database(settings.database_url)
    await database.init()
    yield database
    await database.close()


@pytest.fixture
def locks() -> DroneLocks:
    return DroneLocks()


@pytest.fixture
def drones(db, locks) -> DroneRepository:
    return DroneRepository(db, locks, StatusPolicy())


@pytest.fixture
def waypoints(db, locks) -> WaypointRepository:
    return WaypointRepository(db, locks)


@pytest.fixture
def file_store(settings) -> MissionFileStore:
    return MissionFileStore(settings.mission_dir, settings.mission_file_extension)


@pytest.fixture
def workflow(waypoints, file_store) -> MissionWorkflow:
    return MissionWorkflow(waypoints, file_store)


@pytest.fixture
def service(db, settings) -> FleetService:
    return FleetService.from_settings(db, settings)


@pytest.fixture
async def drone(drones) -> dict:
    return await drones.create_drone(
        {"name": "Scout 1", "model": "X500", "serial_number": "SN-0001"}
    )


@pytest.fixture
def make_waypoints() -> Callable[..., List[WaypointRecord]]:
    def _make(count: int, drone_id: int = 1, source_file: str = "test.waypoints") -> List[WaypointRecord]:
        return [
            WaypointRecord(
                drone_id=drone_id,
                sequence_number=i,
                command=16,
                param1=0.0,
                param2=0.0,
                param3=0.0,
                param4=0.0,
                latitude=47.0 + i * 0.001,
                longitude=8.0,
                altitude=10.0 + i,
                auto_continue=True,
                source_file=source_file,
            )
            for i in range(count)
        ]

    return _make
