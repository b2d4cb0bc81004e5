from __future__ import annotations


class MissionStoreError(Exception):
    """Base class for every failure surfaced to callers."""

    kind = "MissionStoreError"

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


# --------------------
# Validation
# --------------------
class ValidationError(MissionStoreError):
    kind = "ValidationError"


class MissingRequiredField(ValidationError):
    kind = "MissingRequiredField"

    def __init__(self, field: str):
        super().__init__(f"Missing required field: {field}")
        self.field = field


class InvalidStatus(ValidationError):
    kind = "InvalidStatus"

    def __init__(self, status):
        super().__init__(f"Invalid drone status: {status!r}")
        self.status = status


class InvalidTransition(ValidationError):
    kind = "InvalidTransition"

    def __init__(self, current: str, requested: str):
        super().__init__(f"Status transition {current} -> {requested} is not allowed")
        self.current = current
        self.requested = requested


# --------------------
# Not found
# --------------------
class NotFoundError(MissionStoreError):
    kind = "NotFoundError"


class DroneNotFound(NotFoundError):
    kind = "DroneNotFound"

    def __init__(self, drone_id: int):
        super().__init__(f"Drone {drone_id} not found")
        self.drone_id = drone_id


class MissionFileNotFound(NotFoundError):
    kind = "FileNotFound"

    def __init__(self, filename: str):
        super().__init__(f"Waypoint file not found: {filename}")
        self.filename = filename


# --------------------
# Waypoint file format
# --------------------
class FormatError(MissionStoreError):
    kind = "FormatError"


class EmptyInput(FormatError):
    kind = "EmptyInput"

    def __init__(self, message: str = "Empty file"):
        super().__init__(message)


class BadHeader(FormatError):
    kind = "BadHeader"

    def __init__(self, message: str = "Invalid QGC waypoint format"):
        super().__init__(message)


class MalformedLine(FormatError):
    kind = "MalformedLine"

    def __init__(self, line_number: int, reason: str):
        super().__init__(f"Malformed waypoint line {line_number}: {reason}")
        self.line_number = line_number


# --------------------
# Storage / transport
# --------------------
class StorageError(MissionStoreError):
    kind = "StorageError"


class UploadError(MissionStoreError):
    kind = "UploadError"
