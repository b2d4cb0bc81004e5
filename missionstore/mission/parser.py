"""
QGC WPL waypoint file parser.

File layout:

    QGC WPL 110
    <index> <current> <frame> <command> <p1> <p2> <p3> <p4> <lat> <lon> <alt> <autocontinue>
    ...

Only the command, the four params, the position and the autocontinue flag
are kept. index/current/frame are read past but not interpreted; the stored
sequence number is our own dense counter over accepted lines.
"""
from __future__ import annotations

import logging
import math
import re
from typing import List, Union

from missionstore.drone.models import WaypointRecord
from missionstore.errors import BadHeader, EmptyInput, FormatError, MalformedLine

logger = logging.getLogger(__name__)

HEADER_MARKER = "QGC WPL"
HEADER_RE = re.compile(r"QGC WPL\s+\S+")
MIN_FIELDS = 12


def _decode(content: Union[bytes, str]) -> str:
    if isinstance(content, str):
        return content
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise FormatError(f"Waypoint file is not valid UTF-8 text: {e}") from e


def _check_header(line: str) -> None:
    # matched against the raw line: no leading whitespace, marker then a separate version token
    if HEADER_RE.match(line):
        return
    if line.rstrip() == HEADER_MARKER:
        raise BadHeader("QGC WPL header is missing the format version")
    raise BadHeader()


def _finite(raw: str) -> float:
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError(f"non-finite value {raw!r}")
    return value


def _to_int(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        # some planners write integral fields as "16.000000"
        return int(float(raw))


def _parse_line(parts: List[str], drone_id: int, sequence_number: int, source_file: str) -> WaypointRecord:
    return WaypointRecord(
        drone_id=drone_id,
        sequence_number=sequence_number,
        command=_to_int(parts[3]),
        param1=_finite(parts[4]),
        param2=_finite(parts[5]),
        param3=_finite(parts[6]),
        param4=_finite(parts[7]),
        latitude=_finite(parts[8]),
        longitude=_finite(parts[9]),
        altitude=_finite(parts[10]),
        auto_continue=_to_int(parts[11]) != 0,
        source_file=source_file,
    )


def parse_waypoint_file(
    content: Union[bytes, str],
    drone_id: int,
    source_file: str,
    *,
    strict: bool = False,
) -> List[WaypointRecord]:
    """
    Parse a QGC WPL payload into ordered waypoint records for one drone.

    Blank lines are ignored everywhere. In lenient mode (the default) a data
    line with fewer than 12 fields, or with fields that are not finite
    numbers (``inf``, ``nan``, ``1e999``), is skipped and does not consume a
    sequence number. In strict mode the same line raises MalformedLine.

    Raises EmptyInput when nothing but blank lines is present and BadHeader
    when the first line is not a ``QGC WPL <version>`` header.
    """
    lines = [
        (number, line)
        for number, line in enumerate(_decode(content).splitlines(), start=1)
        if line.strip()
    ]
    if not lines:
        raise EmptyInput()

    _check_header(lines[0][1])

    waypoints: List[WaypointRecord] = []
    skipped = 0
    for number, line in lines[1:]:
        parts = line.split()
        if len(parts) < MIN_FIELDS:
            if strict:
                raise MalformedLine(number, f"expected {MIN_FIELDS} fields, got {len(parts)}")
            skipped += 1
            continue
        try:
            waypoint = _parse_line(parts, drone_id, len(waypoints), source_file)
        except (ValueError, OverflowError) as e:
            if strict:
                raise MalformedLine(number, str(e)) from e
            logger.warning("Skipping invalid waypoint line %s in %s: %s", number, source_file, e)
            skipped += 1
            continue
        waypoints.append(waypoint)

    if skipped:
        logger.info("Skipped %s malformed line(s) in %s", skipped, source_file)
    logger.debug("Parsed %s waypoints from %s for drone %s", len(waypoints), source_file, drone_id)
    return waypoints
