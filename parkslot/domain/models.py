# File: parkslot/domain/models.py
"""
Domain Models for Parking Slot Management

This module contains:
1. Enums: vehicle type taxonomy, vehicle and payment statuses, change kinds
2. Value Objects: per-type capacity
3. Entities: Slot, ParkingArea (aggregate root), Vehicle, User
4. Domain Events: area change notifications

Vehicle types are compared only through normalize_vehicle_type(); free text
from clients never meets an equality check directly.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Iterable, Tuple
from datetime import datetime, timezone
from enum import Enum
import re
import uuid

from .errors import CapacityError, ConflictError, ErrorCode


def utc_now() -> datetime:
    """Timezone-aware current time used for every timestamp in the domain"""
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class VehicleType(Enum):
    """
    Canonical vehicle types
    The value is the label stored on slots and vehicles
    """
    CAR = "Car"
    BIKE = "Bike"
    VAN = "Van"
    THREE_WHEELER = "Three-wheeler"

    def matches(self, other: Any) -> bool:
        """Check canonical equality with another type or label"""
        return normalize_vehicle_type(other) is self

    def __str__(self) -> str:
        return self.value


# Order used when laying out typed slots, and the type used to pad layouts
LAYOUT_TYPE_ORDER: Tuple[VehicleType, ...] = (
    VehicleType.CAR,
    VehicleType.BIKE,
    VehicleType.VAN,
    VehicleType.THREE_WHEELER,
)
FALLBACK_VEHICLE_TYPE = VehicleType.CAR

_VEHICLE_TYPE_ALIASES: Dict[str, VehicleType] = {
    # Cars
    "car": VehicleType.CAR,
    "cars": VehicleType.CAR,
    "sedan": VehicleType.CAR,
    "suv": VehicleType.CAR,
    "hatchback": VehicleType.CAR,
    "jeep": VehicleType.CAR,
    "coupe": VehicleType.CAR,
    "automobile": VehicleType.CAR,
    # Two-wheelers
    "bike": VehicleType.BIKE,
    "bikes": VehicleType.BIKE,
    "motorbike": VehicleType.BIKE,
    "motorcycle": VehicleType.BIKE,
    "scooter": VehicleType.BIKE,
    "scooty": VehicleType.BIKE,
    "moped": VehicleType.BIKE,
    "bicycle": VehicleType.BIKE,
    "cycle": VehicleType.BIKE,
    "twowheeler": VehicleType.BIKE,
    "2wheeler": VehicleType.BIKE,
    # Vans and light trucks
    "van": VehicleType.VAN,
    "vans": VehicleType.VAN,
    "minivan": VehicleType.VAN,
    "truck": VehicleType.VAN,
    "lorry": VehicleType.VAN,
    "pickup": VehicleType.VAN,
    "minibus": VehicleType.VAN,
    # Three-wheelers
    "threewheeler": VehicleType.THREE_WHEELER,
    "3wheeler": VehicleType.THREE_WHEELER,
    "auto": VehicleType.THREE_WHEELER,
    "autorickshaw": VehicleType.THREE_WHEELER,
    "rickshaw": VehicleType.THREE_WHEELER,
    "tuktuk": VehicleType.THREE_WHEELER,
    "trishaw": VehicleType.THREE_WHEELER,
}


def _alias_key(value: str) -> str:
    return re.sub(r'[\s_\-]+', '', value.strip().lower())


def normalize_vehicle_type(value: Any) -> Optional[VehicleType]:
    """
    Map a vehicle type label or synonym to its canonical VehicleType
    Case, whitespace, hyphens and underscores are ignored.
    Returns: VehicleType, or None if the value is empty or unknown
    """
    if value is None:
        return None
    if isinstance(value, VehicleType):
        return value
    text = str(value)
    if not text.strip():
        return None
    return _VEHICLE_TYPE_ALIASES.get(_alias_key(text))


class VehicleStatus(Enum):
    """Lifecycle of a vehicle visit"""
    PARKED = "Parked"
    PAID = "Paid"
    EXITED = "Exited"

    @property
    def is_active(self) -> bool:
        """Active vehicles occupy a slot"""
        return self in ACTIVE_VEHICLE_STATUSES


ACTIVE_VEHICLE_STATUSES = frozenset({VehicleStatus.PARKED, VehicleStatus.PAID})


class PaymentStatus(Enum):
    UNPAID = "Unpaid"
    PAID = "Paid"


class ChangeKind(str, Enum):
    """Kinds of committed area changes pushed to the event sink"""
    AREA_CREATED = "area_created"
    AREA_STATUS_CHANGED = "area_status_changed"
    SLOTS_INITIALIZED = "slots_initialized"
    SLOTS_RECONCILED = "slots_reconciled"
    COUNTS_RECALCULATED = "counts_recalculated"
    CAPACITY_UPDATED = "capacity_updated"
    SLOT_OCCUPIED = "slot_occupied"
    SLOT_FREED = "slot_freed"
    PAYMENT_RECORDED = "payment_recorded"


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class TypeCapacity:
    """
    Value Object: declared slot counts per vehicle type
    A zero total means the area has no per-type breakdown
    """
    car: int = 0
    bike: int = 0
    van: int = 0
    three_wheeler: int = 0

    def __post_init__(self):
        for name, value in self.as_dict().items():
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise CapacityError(
                    ErrorCode.INVALID_CAPACITY,
                    f"{name} must be a non-negative integer, got: {value!r}",
                )

    def total(self) -> int:
        return self.car + self.bike + self.van + self.three_wheeler

    @property
    def is_typed(self) -> bool:
        return self.total() > 0

    def get(self, vehicle_type: VehicleType) -> int:
        """Get capacity for a vehicle type"""
        return {
            VehicleType.CAR: self.car,
            VehicleType.BIKE: self.bike,
            VehicleType.VAN: self.van,
            VehicleType.THREE_WHEELER: self.three_wheeler,
        }[vehicle_type]

    def counts_in_layout_order(self) -> List[Tuple[VehicleType, int]]:
        return [(vehicle_type, self.get(vehicle_type)) for vehicle_type in LAYOUT_TYPE_ORDER]

    def as_dict(self) -> Dict[str, int]:
        return {
            "car": self.car,
            "bike": self.bike,
            "van": self.van,
            "three_wheeler": self.three_wheeler,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'TypeCapacity':
        data = data or {}
        return cls(
            car=int(data.get("car") or 0),
            bike=int(data.get("bike") or 0),
            van=int(data.get("van") or 0),
            three_wheeler=int(data.get("three_wheeler") or 0),
        )

    def __str__(self) -> str:
        parts = [f"{count} {vehicle_type}" for vehicle_type, count in self.counts_in_layout_order() if count]
        return f"Capacity: {', '.join(parts) or 'untyped'}"


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

class Entity:
    """
    Base class for all domain entities
    Provides identity-based equality
    """

    def __init__(self, id: Optional[str] = None):
        self._id = id or str(uuid.uuid4())

    @property
    def id(self) -> str:
        return self._id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return False
        return self.id == other.id and type(self) == type(other)

    def __hash__(self) -> int:
        return hash((self.id, type(self).__name__))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id})"


@dataclass
class Slot:
    """
    Numbered physical slot inside a parking area
    The number is the slot's identity and never changes
    """
    slot_number: int
    is_occupied: bool = False
    occupant_vehicle_id: Optional[str] = None
    occupied_at: Optional[datetime] = None
    vehicle_type: Optional[VehicleType] = None

    def __post_init__(self):
        if isinstance(self.slot_number, bool) or not isinstance(self.slot_number, int) or self.slot_number <= 0:
            raise ValueError(f"Slot number must be a positive integer: {self.slot_number!r}")
        if self.vehicle_type is not None and not isinstance(self.vehicle_type, VehicleType):
            self.vehicle_type = normalize_vehicle_type(self.vehicle_type)

    def accepts(self, vehicle_type: Any) -> bool:
        """Untyped slots accept any vehicle"""
        return self.vehicle_type is None or self.vehicle_type.matches(vehicle_type)

    def occupy(self, vehicle_id: str, when: Optional[datetime] = None) -> None:
        """
        Bind a vehicle to this slot
        Raises: ConflictError if the slot is already occupied
        """
        if self.is_occupied:
            raise ConflictError(
                ErrorCode.SLOT_OCCUPIED,
                f"Slot {self.slot_number} is already occupied",
                {"slotNumber": self.slot_number},
            )
        self.is_occupied = True
        self.occupant_vehicle_id = vehicle_id
        self.occupied_at = when or utc_now()

    def vacate(self) -> None:
        self.is_occupied = False
        self.occupant_vehicle_id = None
        self.occupied_at = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot_number": self.slot_number,
            "is_occupied": self.is_occupied,
            "occupant_vehicle_id": self.occupant_vehicle_id,
            "occupied_at": _format_datetime(self.occupied_at),
            "vehicle_type": self.vehicle_type.value if self.vehicle_type else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Slot':
        return cls(
            slot_number=int(data["slot_number"]),
            is_occupied=bool(data.get("is_occupied", False)),
            occupant_vehicle_id=data.get("occupant_vehicle_id"),
            occupied_at=_parse_datetime(data.get("occupied_at")),
            vehicle_type=normalize_vehicle_type(data.get("vehicle_type")),
        )


class ParkingArea(Entity):
    """
    Aggregate Root: parking area with its slot layout and cached counters

    The slot list is a derived cache of the active vehicle set; counters are
    a cache of the slot list. Reconcilers in reconciliation.py repair both.
    """

    def __init__(
        self,
        name: str,
        address: str,
        total_slots: int,
        capacity: Optional[TypeCapacity] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        active: bool = True,
        created_by: Optional[str] = None,
        slots: Optional[Iterable[Slot]] = None,
        available_slots: Optional[int] = None,
        occupied_slots: int = 0,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        id: Optional[str] = None
    ):
        super().__init__(id)
        self.name = name
        self.address = address
        self.total_slots = total_slots
        self.capacity = capacity or TypeCapacity()
        self.latitude = latitude
        self.longitude = longitude
        self.active = active
        self.created_by = created_by
        self.slots: List[Slot] = list(slots or [])
        self.occupied_slots = occupied_slots
        self.available_slots = (
            available_slots if available_slots is not None
            else max(0, total_slots - occupied_slots)
        )
        self.created_at = created_at or utc_now()
        self.updated_at = updated_at or self.created_at

    # ========================================================================
    # SLOT ACCESS
    # ========================================================================

    @property
    def has_layout(self) -> bool:
        return len(self.slots) > 0

    def get_slot(self, slot_number: int) -> Optional[Slot]:
        for slot in self.slots:
            if slot.slot_number == slot_number:
                return slot
        return None

    def find_slot_by_occupant(self, vehicle_id: str) -> Optional[Slot]:
        for slot in self.slots:
            if slot.occupant_vehicle_id is not None and str(slot.occupant_vehicle_id) == str(vehicle_id):
                return slot
        return None

    def sorted_slots(self) -> List[Slot]:
        return sorted(self.slots, key=lambda slot: slot.slot_number)

    def free_slots(self) -> List[Slot]:
        return [slot for slot in self.sorted_slots() if not slot.is_occupied]

    def occupied_slot_count(self) -> int:
        return sum(1 for slot in self.slots if slot.is_occupied)

    def max_slot_number(self) -> int:
        return max((slot.slot_number for slot in self.slots), default=0)

    # ========================================================================
    # COUNTERS
    # ========================================================================

    def set_counters(self, occupied: int) -> None:
        """Set occupied and derive available, clamped to [0, total]"""
        self.occupied_slots = max(0, occupied)
        self.available_slots = min(self.total_slots, max(0, self.total_slots - self.occupied_slots))

    def record_entry(self) -> None:
        self.available_slots = max(0, self.available_slots - 1)
        self.occupied_slots = min(self.total_slots, self.occupied_slots + 1)

    def record_exit(self) -> None:
        self.available_slots = min(self.total_slots, self.available_slots + 1)
        self.occupied_slots = max(0, self.occupied_slots - 1)

    def touch(self) -> None:
        self.updated_at = utc_now()

    def invariant_violations(self) -> List[str]:
        """
        Check the at-rest invariants of the aggregate
        Returns: list of human-readable violations, empty when consistent
        """
        problems = []
        if self.available_slots + self.occupied_slots != self.total_slots:
            problems.append(
                f"available ({self.available_slots}) + occupied ({self.occupied_slots}) "
                f"!= total ({self.total_slots})"
            )
        if self.capacity.is_typed and self.capacity.total() != self.total_slots:
            problems.append(
                f"per-type capacity ({self.capacity.total()}) != total ({self.total_slots})"
            )
        if self.has_layout:
            if len(self.slots) != self.total_slots:
                problems.append(f"layout has {len(self.slots)} slots, expected {self.total_slots}")
            numbers = [slot.slot_number for slot in self.slots]
            if len(set(numbers)) != len(numbers):
                problems.append("duplicate slot numbers")
            occupants = [slot.occupant_vehicle_id for slot in self.slots if slot.occupant_vehicle_id]
            if len(set(occupants)) != len(occupants):
                problems.append("vehicle bound to more than one slot")
            for slot in self.slots:
                if slot.is_occupied != (slot.occupant_vehicle_id is not None):
                    problems.append(f"slot {slot.slot_number} occupant link out of sync")
        return problems

    # ========================================================================
    # SERIALIZATION
    # ========================================================================

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "total_slots": self.total_slots,
            "available_slots": self.available_slots,
            "occupied_slots": self.occupied_slots,
            "active": self.active,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "total_slots": self.total_slots,
            "capacity": self.capacity.as_dict(),
            "available_slots": self.available_slots,
            "occupied_slots": self.occupied_slots,
            "active": self.active,
            "created_by": self.created_by,
            "slots": [slot.to_dict() for slot in self.slots],
            "created_at": _format_datetime(self.created_at),
            "updated_at": _format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ParkingArea':
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            address=data.get("address", ""),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            total_slots=int(data["total_slots"]),
            capacity=TypeCapacity.from_dict(data.get("capacity")),
            available_slots=data.get("available_slots"),
            occupied_slots=int(data.get("occupied_slots") or 0),
            active=bool(data.get("active", True)),
            created_by=data.get("created_by"),
            slots=[Slot.from_dict(item) for item in data.get("slots") or []],
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )

    def __str__(self) -> str:
        return (
            f"{self.name}: {self.available_slots}/{self.total_slots} available "
            f"({self.occupied_slots} occupied)"
        )


class Vehicle(Entity):
    """
    Entity: one vehicle visit to a parking area
    Referenced by slots through occupant_vehicle_id
    """

    def __init__(
        self,
        plate: str,
        vehicle_type: VehicleType,
        parking_area_id: Optional[str] = None,
        slot_number: Optional[int] = None,
        status: VehicleStatus = VehicleStatus.PARKED,
        payment_status: PaymentStatus = PaymentStatus.UNPAID,
        user_id: Optional[str] = None,
        user_email: Optional[str] = None,
        user_name: Optional[str] = None,
        user_phone: Optional[str] = None,
        entry_time: Optional[datetime] = None,
        exit_time: Optional[datetime] = None,
        created_by: Optional[str] = None,
        id: Optional[str] = None
    ):
        super().__init__(id)
        self.plate = plate
        self.vehicle_type = vehicle_type
        self.parking_area_id = parking_area_id
        self.slot_number = slot_number
        self.status = status
        self.payment_status = payment_status
        self.user_id = user_id
        self.user_email = user_email
        self.user_name = user_name
        self.user_phone = user_phone
        self.entry_time = entry_time or utc_now()
        self.exit_time = exit_time
        self.created_by = created_by

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def mark_paid(self) -> None:
        self.status = VehicleStatus.PAID
        self.payment_status = PaymentStatus.PAID

    def mark_exited(self, when: Optional[datetime] = None) -> None:
        self.status = VehicleStatus.EXITED
        self.exit_time = when or utc_now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "plate": self.plate,
            "vehicle_type": self.vehicle_type.value,
            "parking_area_id": self.parking_area_id,
            "slot_number": self.slot_number,
            "status": self.status.value,
            "payment_status": self.payment_status.value,
            "user_id": self.user_id,
            "user_email": self.user_email,
            "user_name": self.user_name,
            "user_phone": self.user_phone,
            "entry_time": _format_datetime(self.entry_time),
            "exit_time": _format_datetime(self.exit_time),
            "created_by": self.created_by,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Vehicle':
        return cls(
            id=str(data["id"]),
            plate=data["plate"],
            vehicle_type=normalize_vehicle_type(data.get("vehicle_type")) or FALLBACK_VEHICLE_TYPE,
            parking_area_id=data.get("parking_area_id"),
            slot_number=data.get("slot_number"),
            status=VehicleStatus(data.get("status", VehicleStatus.PARKED.value)),
            payment_status=PaymentStatus(data.get("payment_status", PaymentStatus.UNPAID.value)),
            user_id=data.get("user_id"),
            user_email=data.get("user_email"),
            user_name=data.get("user_name"),
            user_phone=data.get("user_phone"),
            entry_time=_parse_datetime(data.get("entry_time")),
            exit_time=_parse_datetime(data.get("exit_time")),
            created_by=data.get("created_by"),
        )

    def __str__(self) -> str:
        return f"{self.plate} ({self.vehicle_type}) [{self.status.value}]"


class User(Entity):
    """Entity: person a vehicle is registered to, keyed by email"""

    def __init__(
        self,
        name: str,
        email: str,
        phone: Optional[str] = None,
        role: str = "user",
        created_at: Optional[datetime] = None,
        id: Optional[str] = None
    ):
        super().__init__(id)
        self.name = name
        self.email = email
        self.phone = phone
        self.role = role
        self.created_at = created_at or utc_now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "created_at": _format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            email=data["email"],
            phone=data.get("phone"),
            role=data.get("role", "user"),
            created_at=_parse_datetime(data.get("created_at")),
        )


# ============================================================================
# DOMAIN EVENTS
# ============================================================================

@dataclass
class AreaChangedEvent:
    """Event raised after a committed change to a parking area"""
    area_id: str
    change_kind: ChangeKind
    payload: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "parkingArea.updated",
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "data": {
                "parking_area_id": self.area_id,
                "type": self.change_kind.value,
                **self.payload,
            },
        }
