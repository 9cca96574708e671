# File: parkslot/application/dtos.py
"""
Data Transfer Objects (DTOs) for the slot management service

1. Input DTOs  - requests received from the HTTP layer or the CLI
2. Output DTOs - responses returned to clients

JSON keys are camelCase (plate, userEmail, parkingAreaId, slotNumber, ...)
while Python attributes stay snake_case. Input DTOs are deliberately
permissive: required-field and format checks belong to the service, which
reports them with stable error codes in a fixed order.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..domain.models import ParkingArea, Slot, User, Vehicle


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_dict(self, exclude_none: bool = False) -> Dict[str, Any]:
        """Convert DTO to a JSON-ready dictionary with camelCase keys"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=exclude_none)


# ============================================================================
# INPUT DTOs
# ============================================================================

class RegisterVehicleRequest(BaseDTO):
    """Register a vehicle and bind it to a slot"""
    plate: Optional[str] = Field(default=None, description="License plate")
    user_email: Optional[str] = Field(default=None, description="Owner email, used to find or create the user")
    user_name: Optional[str] = Field(default=None, description="Owner name")
    user_phone: Optional[str] = Field(default=None, description="Owner phone (optional)")
    vehicle_type: Optional[str] = Field(default=None, description="Free-text vehicle type, defaults to Car")
    parking_area_id: Optional[str] = Field(default=None, description="Target parking area")
    slot_number: Optional[Any] = Field(default=None, description="Requested slot number")
    created_by: Optional[str] = Field(default=None, description="Operator who registered the vehicle")


class ReleaseSlotRequest(BaseDTO):
    """Exit a vehicle and free its slot"""
    vehicle_id: str = Field(description="Vehicle to release")
    exit_time: Optional[datetime] = Field(default=None, description="Exit time, defaults to now")


class AreaCapacityRequest(BaseDTO):
    """Change the total or per-type capacity of an area"""
    total_slots: Optional[int] = Field(default=None, description="New total slot count")
    car_slots: Optional[int] = Field(default=None)
    bike_slots: Optional[int] = Field(default=None)
    van_slots: Optional[int] = Field(default=None)
    three_wheeler_slots: Optional[int] = Field(default=None)

    def has_type_counts(self) -> bool:
        return any(
            value is not None
            for value in (self.car_slots, self.bike_slots, self.van_slots, self.three_wheeler_slots)
        )


class CreateAreaRequest(BaseDTO):
    """Create a parking area"""
    name: Optional[str] = Field(default=None)
    address: Optional[str] = Field(default=None)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    total_slots: Optional[int] = Field(default=None, description="Flat total, ignored when per-type counts sum > 0")
    car_slots: int = Field(default=0)
    bike_slots: int = Field(default=0)
    van_slots: int = Field(default=0)
    three_wheeler_slots: int = Field(default=0)
    active: bool = Field(default=True)
    created_by: Optional[str] = Field(default=None, description="Admin email")


# ============================================================================
# OUTPUT DTOs
# ============================================================================

class SlotDTO(BaseDTO):
    slot_number: int
    is_occupied: bool
    vehicle_type: Optional[str] = None
    occupant_vehicle_id: Optional[str] = None
    occupied_at: Optional[datetime] = None

    @classmethod
    def from_slot(cls, slot: Slot) -> 'SlotDTO':
        return cls(
            slot_number=slot.slot_number,
            is_occupied=slot.is_occupied,
            vehicle_type=slot.vehicle_type.value if slot.vehicle_type else None,
            occupant_vehicle_id=slot.occupant_vehicle_id,
            occupied_at=slot.occupied_at,
        )


class AreaSummaryDTO(BaseDTO):
    """Aggregate counters of an area"""
    id: str
    name: str
    address: Optional[str] = None
    total_slots: int
    available_slots: int
    occupied_slots: int
    active: bool = True

    @classmethod
    def from_area(cls, area: ParkingArea) -> 'AreaSummaryDTO':
        return cls(**area.summary())


class AreaDetailDTO(AreaSummaryDTO):
    """Full area view including capacity breakdown and layout"""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    car_slots: int = 0
    bike_slots: int = 0
    van_slots: int = 0
    three_wheeler_slots: int = 0
    created_by: Optional[str] = None
    slots: List[SlotDTO] = Field(default_factory=list)

    @classmethod
    def from_area(cls, area: ParkingArea) -> 'AreaDetailDTO':
        return cls(
            **area.summary(),
            latitude=area.latitude,
            longitude=area.longitude,
            car_slots=area.capacity.car,
            bike_slots=area.capacity.bike,
            van_slots=area.capacity.van,
            three_wheeler_slots=area.capacity.three_wheeler,
            created_by=area.created_by,
            slots=[SlotDTO.from_slot(slot) for slot in area.sorted_slots()],
        )


class UserDTO(BaseDTO):
    id: str
    name: str
    email: str
    phone: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> 'UserDTO':
        return cls(id=user.id, name=user.name, email=user.email, phone=user.phone)


class VehicleDTO(BaseDTO):
    """Vehicle with optional populated area and user"""
    id: str
    plate: str
    vehicle_type: str
    parking_area_id: Optional[str] = None
    slot_number: Optional[int] = None
    status: str
    payment_status: str
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    user_phone: Optional[str] = None
    entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None
    created_by: Optional[str] = None
    parking_area: Optional[AreaSummaryDTO] = None
    user: Optional[UserDTO] = None

    @classmethod
    def from_vehicle(
        cls,
        vehicle: Vehicle,
        area: Optional[ParkingArea] = None,
        user: Optional[User] = None
    ) -> 'VehicleDTO':
        return cls(
            id=vehicle.id,
            plate=vehicle.plate,
            vehicle_type=vehicle.vehicle_type.value,
            parking_area_id=vehicle.parking_area_id,
            slot_number=vehicle.slot_number,
            status=vehicle.status.value,
            payment_status=vehicle.payment_status.value,
            user_id=vehicle.user_id,
            user_email=vehicle.user_email,
            user_name=vehicle.user_name,
            user_phone=vehicle.user_phone,
            entry_time=vehicle.entry_time,
            exit_time=vehicle.exit_time,
            created_by=vehicle.created_by,
            parking_area=AreaSummaryDTO.from_area(area) if area else None,
            user=UserDTO.from_user(user) if user else None,
        )


class AvailableSlotsResponse(BaseDTO):
    parking_area: AreaSummaryDTO
    available_slots: List[SlotDTO]
    vehicle_type: Optional[str] = None


class SlotAssignmentResponse(BaseDTO):
    message: str = "User and vehicle registered successfully"
    vehicle: VehicleDTO
    parking_area: AreaSummaryDTO


class SlotReleaseResponse(BaseDTO):
    message: str = "User exited and slot freed successfully"
    vehicle: VehicleDTO
    parking_area: AreaSummaryDTO


class PaymentRecordedResponse(BaseDTO):
    message: str = "Payment recorded"
    vehicle: VehicleDTO


class AreaOperationResponse(BaseDTO):
    """Result of an administrative operation on one area"""
    message: str
    parking_area: AreaDetailDTO
    changed: bool = True
