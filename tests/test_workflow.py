"""Tests for the upload/load mission workflow and the mission file store."""

from __future__ import annotations

import pytest

from conftest import SAMPLE_MISSION
from missionstore.errors import (
    BadHeader,
    DroneNotFound,
    MalformedLine,
    MissionFileNotFound,
    UploadError,
)


async def test_upload_stores_file_and_replaces_mission(workflow, file_store, waypoints, drone) -> None:
    result = await workflow.upload_mission(drone["id"], SAMPLE_MISSION.encode(), "survey.waypoints")

    assert result.drone_id == drone["id"]
    assert result.filename == "survey.waypoints"
    assert result.waypoint_count == 4
    assert [w.sequence_number for w in result.waypoints] == [0, 1, 2, 3]
    assert result.total_distance_m > 0
    assert await file_store.exists("survey.waypoints")
    assert len(await waypoints.list(drone["id"])) == 4


async def test_upload_without_content_is_an_upload_error(workflow, file_store, drone) -> None:
    with pytest.raises(UploadError):
        await workflow.upload_mission(drone["id"], None, "survey.waypoints")
    assert not await file_store.exists("survey.waypoints")


async def test_upload_rejects_path_like_names(workflow, drone) -> None:
    with pytest.raises(UploadError):
        await workflow.upload_mission(drone["id"], SAMPLE_MISSION, "../escape.waypoints")


async def test_failed_parse_keeps_raw_file_and_previous_mission(workflow, file_store, waypoints, drone) -> None:
    await workflow.upload_mission(drone["id"], SAMPLE_MISSION, "good.waypoints")

    with pytest.raises(BadHeader):
        await workflow.upload_mission(drone["id"], b"not a mission\n1 2 3\n", "broken.waypoints")

    assert await file_store.read("broken.waypoints") == b"not a mission\n1 2 3\n"
    listed = await waypoints.list(drone["id"])
    assert len(listed) == 4
    assert {w.source_file for w in listed} == {"good.waypoints"}


async def test_upload_for_unknown_drone_does_not_store_waypoints(workflow, waypoints) -> None:
    with pytest.raises(DroneNotFound):
        await workflow.upload_mission(999, SAMPLE_MISSION, "orphan.waypoints")
    assert await waypoints.list(999) == []


async def test_load_existing_file(workflow, file_store, drone) -> None:
    await file_store.write("stored.waypoints", SAMPLE_MISSION.encode())

    result = await workflow.load_mission(drone["id"], "stored.waypoints")

    assert result.waypoint_count == 4
    assert {w.source_file for w in result.waypoints} == {"stored.waypoints"}


async def test_load_missing_file(workflow, drone) -> None:
    with pytest.raises(MissionFileNotFound):
        await workflow.load_mission(drone["id"], "nope.waypoints")


async def test_strict_override_per_call(workflow, waypoints, drone) -> None:
    content = SAMPLE_MISSION + "9 0 3 16 0 0\n"

    with pytest.raises(MalformedLine):
        await workflow.upload_mission(drone["id"], content, "short.waypoints", strict=True)
    assert await waypoints.count(drone["id"]) == 0

    result = await workflow.upload_mission(drone["id"], content, "short.waypoints")
    assert result.waypoint_count == 4


async def test_clear_mission(workflow, waypoints, drone) -> None:
    await workflow.upload_mission(drone["id"], SAMPLE_MISSION, "survey.waypoints")
    assert await workflow.clear_mission(drone["id"]) == 4
    assert await workflow.clear_mission(drone["id"]) == 0


async def test_available_files_filters_by_extension(workflow, file_store) -> None:
    await file_store.write("a.waypoints", b"QGC WPL 110\n")
    await file_store.write("b.txt", b"hello")

    files = await workflow.available_files()

    assert [f["filename"] for f in files] == ["a.waypoints"]
    assert files[0]["size"] == len(b"QGC WPL 110\n")
    assert files[0]["modified"]


async def test_available_files_without_directory(workflow) -> None:
    assert await workflow.available_files() == []


async def test_mission_statistics(workflow, drone) -> None:
    result = await workflow.upload_mission(drone["id"], SAMPLE_MISSION, "survey.waypoints")

    stats = await workflow.mission_statistics(drone["id"])

    assert stats["total_waypoints"] == 4
    assert stats["total_distance_m"] == result.total_distance_m
    assert stats["max_altitude"] == 488.0


async def test_non_finite_line_never_reaches_the_store(workflow, waypoints, drone) -> None:
    good = await workflow.upload_mission(drone["id"], SAMPLE_MISSION, "good.waypoints")
    content = SAMPLE_MISSION + "4 0 3 16 0 0 0 0 nan 8.5 10 1\n"

    with pytest.raises(MalformedLine):
        await workflow.upload_mission(drone["id"], content, "nan.waypoints", strict=True)
    assert {w.source_file for w in await waypoints.list(drone["id"])} == {"good.waypoints"}

    result = await workflow.upload_mission(drone["id"], content, "nan.waypoints")
    assert result.waypoint_count == 4
    assert result.total_distance_m == good.total_distance_m
    assert [w.sequence_number for w in await waypoints.list(drone["id"])] == [0, 1, 2, 3]
