from __future__ import annotations

from typing import Dict, FrozenSet, Optional

from missionstore.drone.models import DroneStatus
from missionstore.errors import InvalidStatus, InvalidTransition

S = DroneStatus

# Setting the current status again is always allowed; ERROR is reachable from everywhere.
TRANSITIONS: Dict[DroneStatus, FrozenSet[DroneStatus]] = {
    S.IDLE: frozenset({S.FLYING, S.CHARGING, S.MAINTENANCE, S.ERROR}),
    S.FLYING: frozenset({S.LANDING, S.ERROR}),
    S.LANDING: frozenset({S.IDLE, S.ERROR}),
    S.CHARGING: frozenset({S.IDLE, S.MAINTENANCE, S.ERROR}),
    S.MAINTENANCE: frozenset({S.IDLE, S.CHARGING, S.ERROR}),
    S.ERROR: frozenset({S.IDLE, S.MAINTENANCE, S.ERROR}),
}


def parse_status(value) -> DroneStatus:
    """Coerce a raw value into a DroneStatus or raise InvalidStatus."""
    if isinstance(value, DroneStatus):
        return value
    try:
        return DroneStatus(value)
    except ValueError:
        raise InvalidStatus(value) from None


class StatusPolicy:
    """
    Decides whether a drone may move from one status to another.

    With enforce=False every status may follow every other one, which is how
    the fleet behaved historically. With enforce=True the TRANSITIONS table
    is applied.
    """

    def __init__(self, enforce: bool = False):
        self.enforce = enforce

    def allowed(self, current: DroneStatus, requested: DroneStatus) -> bool:
        if not self.enforce or current == requested:
            return True
        return requested in TRANSITIONS[current]

    def check(self, current: Optional[str], requested) -> DroneStatus:
        target = parse_status(requested)
        if current is None:
            return target
        source = parse_status(current)
        if not self.allowed(source, target):
            raise InvalidTransition(source.value, target.value)
        return target
