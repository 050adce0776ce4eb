"""
Data model for violation lookups.

Record fields are Optional internally: a DOM node that was not found is
stored as None. to_dict() is the output boundary and renders None as an
empty string, which is what API consumers expect.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from core.exceptions import InvalidTargetError

PLATE_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{1,2}[0-9]{4,5}$", re.IGNORECASE)


class VehicleClass(str, Enum):
    """Vehicle classes accepted by the search form (values are option values)."""

    MOTORBIKE = "motorbike"
    CAR = "car"
    ELECTRIC_BIKE = "electricbike"

    @classmethod
    def parse(cls, value: Union[str, "VehicleClass"]) -> "VehicleClass":
        """
        Parse a vehicle class from an enum member or its string value.

        Raises:
            InvalidTargetError: If the value is not a known vehicle class
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        allowed = ", ".join(member.value for member in cls)
        raise InvalidTargetError(f"Vehicle class must be one of: {allowed} (got {value!r})")


class SessionState(Enum):
    """Lifecycle states of the shared browser session."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    DEGRADED = "degraded"
    RESTARTING = "restarting"


@dataclass(frozen=True)
class Target:
    """
    One plate number and vehicle class to look up.

    The plate is stripped and upper-cased on construction; an invalid plate
    raises InvalidTargetError so that it never reaches the browser.
    """

    plate_number: str
    vehicle_class: VehicleClass = VehicleClass.CAR

    def __post_init__(self) -> None:
        if not isinstance(self.plate_number, str):
            raise InvalidTargetError("Plate number must be a string")
        plate = self.plate_number.strip().upper()
        if not PLATE_PATTERN.match(plate):
            raise InvalidTargetError(
                f"Invalid plate number format: {self.plate_number!r} (e.g. 30E43807)"
            )
        object.__setattr__(self, "plate_number", plate)
        object.__setattr__(self, "vehicle_class", VehicleClass.parse(self.vehicle_class))

    def cache_key(self) -> str:
        """Deterministic cache key for this target."""
        return f"violation:{self.plate_number}:{self.vehicle_class.value}"


def _text(value: Optional[str]) -> str:
    return value if value is not None else ""


@dataclass
class VehicleInfo:
    vehicle_type: Optional[str] = None
    plate_color: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        return {"vehicleType": _text(self.vehicle_type), "plateColor": _text(self.plate_color)}


@dataclass
class ViolationDetail:
    violation_type: Optional[str] = None
    time: Optional[str] = None
    location: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        return {
            "violationType": _text(self.violation_type),
            "time": _text(self.time),
            "location": _text(self.location),
        }


@dataclass
class ProcessingUnit:
    detecting_unit: Optional[str] = None
    detecting_address: Optional[str] = None
    resolving_unit: Optional[str] = None
    resolving_address: Optional[str] = None
    phone: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        data = {
            "detectingUnit": _text(self.detecting_unit),
            "detectingAddress": _text(self.detecting_address),
            "resolvingUnit": _text(self.resolving_unit),
            "resolvingAddress": _text(self.resolving_address),
        }
        # phone is optional on the wire
        if self.phone:
            data["phone"] = self.phone
        return data


@dataclass
class ViolationRecord:
    """One violation parsed from a result card."""

    plate_number: Optional[str] = None
    status: Optional[str] = None
    vehicle_info: VehicleInfo = field(default_factory=VehicleInfo)
    violation_detail: ViolationDetail = field(default_factory=ViolationDetail)
    processing_unit: ProcessingUnit = field(default_factory=ProcessingUnit)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plateNumber": _text(self.plate_number),
            "status": _text(self.status),
            "vehicleInfo": self.vehicle_info.to_dict(),
            "violationDetail": self.violation_detail.to_dict(),
            "processingUnit": self.processing_unit.to_dict(),
        }


@dataclass
class LookupOutcome:
    """
    Result of looking up one target.

    Use ok() and failed() to build outcomes: a failed outcome never carries
    records, and a successful one never carries an error.
    """

    success: bool
    target: Target
    records: List[ViolationRecord] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def ok(cls, target: Target, records: Optional[List[ViolationRecord]] = None) -> "LookupOutcome":
        return cls(success=True, target=target, records=list(records or []), error=None)

    @classmethod
    def failed(cls, target: Target, error: str) -> "LookupOutcome":
        return cls(success=False, target=target, records=[], error=error or "Unknown error")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "plateNumber": self.target.plate_number,
            "vehicleType": self.target.vehicle_class.value,
            "data": [record.to_dict() for record in self.records],
        }
        if self.error is not None:
            data["error"] = self.error
        return data
