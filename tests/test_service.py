"""Tests for the caller-facing service outcomes."""

from __future__ import annotations

from conftest import SAMPLE_MISSION
from missionstore.drone.models import DroneStatus
from missionstore.errors import FormatError, NotFoundError, ValidationError


async def test_create_and_fetch(service) -> None:
    created = await service.create_drone({"name": "Scout", "model": "X500", "serial_number": "SN-9"})
    assert created.success
    assert created.data["status"] == "idle"

    fetched = await service.get_drone(created.data["id"])
    assert fetched.success
    assert fetched.as_dict() == {"success": True, "data": fetched.data}


async def test_missing_serial_is_a_validation_failure(service) -> None:
    outcome = await service.create_drone({"name": "Scout", "model": "X500"})

    assert not outcome.success
    assert outcome.error_kind == "MissingRequiredField"
    assert isinstance(outcome.exception, ValidationError)
    assert "serial_number" in outcome.error


async def test_unknown_drone_is_a_not_found_failure(service) -> None:
    outcome = await service.get_drone_status(12345)
    assert outcome.error_kind == "DroneNotFound"
    assert isinstance(outcome.exception, NotFoundError)


async def test_mission_round_trip_through_service(service) -> None:
    drone_id = (await service.create_drone({"name": "S", "model": "M", "serial_number": "SN"})).data["id"]

    uploaded = await service.upload_waypoint_file(drone_id, SAMPLE_MISSION.encode(), "svc.waypoints")
    assert uploaded.success
    assert uploaded.data["waypoint_count"] == 4
    assert uploaded.data["waypoints"][0]["sequence_number"] == 0

    listed = await service.list_waypoints(drone_id)
    assert [w["sequence_number"] for w in listed.data] == [0, 1, 2, 3]

    files = await service.list_waypoint_files()
    assert [f["filename"] for f in files.data] == ["svc.waypoints"]

    loaded = await service.load_waypoint_file(drone_id, "svc.waypoints")
    assert loaded.success

    cleared = await service.clear_waypoints(drone_id)
    assert cleared.data == {"drone_id": drone_id, "waypoints_removed": 4}

    deleted = await service.delete_drone(drone_id)
    assert deleted.success
    assert (await service.list_waypoints(drone_id)).data == []


async def test_bad_header_outcome(service) -> None:
    drone_id = (await service.create_drone({"name": "S", "model": "M", "serial_number": "SN"})).data["id"]

    outcome = await service.upload_waypoint_file(drone_id, b"WPL\n", "bad.waypoints")

    assert outcome.error_kind == "BadHeader"
    assert isinstance(outcome.exception, FormatError)


async def test_upload_failure_outcome(service) -> None:
    outcome = await service.upload_waypoint_file(1, None, "x.waypoints")
    assert outcome.error_kind == "UploadError"


async def test_status_battery_position(service) -> None:
    drone_id = (await service.create_drone({"name": "S", "model": "M", "serial_number": "SN"})).data["id"]

    assert (await service.update_drone_status(drone_id, "flying")).data["status"] == "flying"
    assert (await service.update_drone_status(drone_id, "sleeping")).error_kind == "InvalidStatus"
    assert (await service.update_drone_battery(drone_id, 42)).data["battery_level"] == 42
    moved = await service.update_drone_position(drone_id, 1.5, 2.5, 30.0)
    assert moved.data["current_altitude"] == 30.0


async def test_non_finite_coordinate_does_not_replace_the_mission(service) -> None:
    drone_id = (await service.create_drone({"name": "S", "model": "M", "serial_number": "SN"})).data["id"]
    await service.upload_waypoint_file(drone_id, SAMPLE_MISSION.encode(), "good.waypoints")
    content = b"QGC WPL 110\n0 1 0 16 0 0 0 0 1 2 3 1\n1 0 3 16 0 0 0 0 1e999 2 3 1\n"

    strict = await service.upload_waypoint_file(drone_id, content, "inf.waypoints", strict=True)
    assert strict.error_kind == "MalformedLine"
    listed = await service.list_waypoints(drone_id)
    assert {w["source_file"] for w in listed.data} == {"good.waypoints"}

    lenient = await service.upload_waypoint_file(drone_id, content, "inf.waypoints")
    assert lenient.success
    assert lenient.data["waypoint_count"] == 1
    assert lenient.data["total_distance_m"] == 0.0


async def test_status_enum_accepted_on_create_and_update(service) -> None:
    created = await service.create_drone(
        {"name": "S", "model": "M", "serial_number": "SN", "status": DroneStatus.FLYING}
    )
    assert created.success
    assert created.data["status"] == "flying"

    updated = await service.update_drone(created.data["id"], {"status": DroneStatus.LANDING})
    assert updated.data["status"] == "landing"
