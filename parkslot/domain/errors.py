# File: parkslot/domain/errors.py
"""
Error taxonomy for the slot management core

Every failure the core reports to a caller is a ParkingError carrying a
stable machine-readable code, a human message and an HTTP-style status.
The classes group codes by cause:

1. InvalidInputError  - malformed or missing request data (no side effects)
2. NotFoundError      - referenced area or vehicle does not exist
3. ConflictError      - request collides with current state
4. CapacityError      - capacity edit would break an invariant
5. AreaBusyError      - exclusive access to an area could not be obtained
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Stable error codes exposed to clients"""
    MISSING_FIELDS = "MISSING_FIELDS"
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_PHONE = "INVALID_PHONE"
    INVALID_PLATE = "INVALID_PLATE"
    INVALID_VEHICLE_TYPE = "INVALID_VEHICLE_TYPE"
    VEHICLE_ALREADY_PARKED = "VEHICLE_ALREADY_PARKED"
    PARKING_AREA_NOT_FOUND = "PARKING_AREA_NOT_FOUND"
    INVALID_SLOT_NUMBER = "INVALID_SLOT_NUMBER"
    SLOT_OCCUPIED = "SLOT_OCCUPIED"
    SLOT_TYPE_MISMATCH = "SLOT_TYPE_MISMATCH"
    NO_AVAILABLE_SLOTS = "NO_AVAILABLE_SLOTS"
    VEHICLE_NOT_FOUND = "VEHICLE_NOT_FOUND"
    VEHICLE_ALREADY_EXITED = "VEHICLE_ALREADY_EXITED"
    INVALID_TOTAL_SLOTS = "INVALID_TOTAL_SLOTS"
    INVALID_CAPACITY = "INVALID_CAPACITY"
    AREA_BUSY = "AREA_BUSY"
    INVALID_REQUEST = "INVALID_REQUEST"
    UNKNOWN_COMMAND = "UNKNOWN_COMMAND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ParkingError(Exception):
    """Base exception for all user-facing slot management errors"""

    status_code: int = 500

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.code = ErrorCode(code)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON error payload returned to clients"""
        payload: Dict[str, Any] = {
            "success": False,
            "error": self.message,
            "code": self.code.value,
            "status": self.status_code,
        }
        if self.details is not None:
            payload["details"] = self.details
        return payload

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class InvalidInputError(ParkingError):
    """Request data is missing or malformed"""
    status_code = 400


class NotFoundError(ParkingError):
    """Referenced entity does not exist"""
    status_code = 404


class ConflictError(ParkingError):
    """Request conflicts with the current state of an area or vehicle"""
    status_code = 409


class CapacityError(ParkingError):
    """Capacity change would violate an area invariant"""
    status_code = 400


class AreaBusyError(ParkingError):
    """Exclusive access to a parking area could not be acquired in time"""
    status_code = 503

    def __init__(self, area_id: str, waited_seconds: float):
        super().__init__(
            ErrorCode.AREA_BUSY,
            f"Parking area {area_id} is busy, try again",
            {"parkingAreaId": area_id, "waitedSeconds": waited_seconds},
        )
