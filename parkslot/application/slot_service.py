# File: parkslot/application/slot_service.py
"""
Slot Management Application Service

Orchestrates the use cases of the slot allocation core:
1. Availability query - fresh view of free slots, optionally per type
2. Slot allocation     - register a vehicle and bind it to a slot
3. Slot release        - exit a vehicle and free its slot
4. Payment marking     - Parked -> Paid, the slot stays occupied
5. Administration      - create areas, initialize layouts, recalculate
                         counts, edit capacity, toggle visibility

Every operation that reads-then-writes an area does so while holding that
area's lock from the AreaLockManager, so the "slot is free" check and the
write that occupies it cannot interleave with another request for the same
area. Events are sent only after the area has been persisted.
"""

from contextlib import contextmanager, nullcontext
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
import logging

from ..domain.errors import (
    CapacityError, ConflictError, ErrorCode, InvalidInputError, NotFoundError
)
from ..domain.layout import generate_layout, resize_layout
from ..domain.models import (
    ChangeKind, FALLBACK_VEHICLE_TYPE, ParkingArea, Slot, TypeCapacity,
    Vehicle, VehicleStatus, VehicleType, normalize_vehicle_type, utc_now
)
from ..domain.reconciliation import align_slot_types, rebuild_occupancy, reconcile_occupancy
from ..domain.strategies import NearestEntryStrategy, SlotSelectionStrategy
from ..domain.validation import (
    is_blank, is_valid_email, is_valid_phone, is_valid_plate,
    normalize_email, normalize_phone, normalize_plate, parse_slot_number
)
from ..infrastructure.locking import AreaLockManager, InProcessAreaLockManager
from ..infrastructure.messaging import EventBus, EventSink
from ..infrastructure.repositories import (
    ParkingAreaRepository, UserRepository, VehicleRepository
)
from .dtos import (
    AreaCapacityRequest, AreaDetailDTO, AreaOperationResponse, AreaSummaryDTO,
    AvailableSlotsResponse, CreateAreaRequest, PaymentRecordedResponse,
    RegisterVehicleRequest, SlotAssignmentResponse, SlotDTO,
    SlotReleaseResponse, VehicleDTO
)


class _Registration:
    """Validated, normalized registration fields"""

    def __init__(self, plate: str, email: str, name: str, phone: str,
                 vehicle_type: VehicleType, area_id: str, created_by: Optional[str]):
        self.plate = plate
        self.email = email
        self.name = name
        self.phone = phone
        self.vehicle_type = vehicle_type
        self.area_id = area_id
        self.created_by = created_by


class SlotService:
    """
    Application service for slot allocation and occupancy

    Collaborators are injected so the same service runs on the in-memory,
    SQLAlchemy or MongoDB repositories, with local or Redis locks.
    """

    def __init__(
        self,
        areas: ParkingAreaRepository,
        vehicles: VehicleRepository,
        users: UserRepository,
        locks: Optional[AreaLockManager] = None,
        events: Optional[EventSink] = None,
        selection_strategy: Optional[SlotSelectionStrategy] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.areas = areas
        self.vehicles = vehicles
        self.users = users
        self.locks = locks or InProcessAreaLockManager()
        self.events = events or EventBus()
        self.selection_strategy = selection_strategy or NearestEntryStrategy()
        self.clock = clock

    # ========================================================================
    # AVAILABILITY QUERY
    # ========================================================================

    def list_available(
        self,
        area_id: str,
        vehicle_type: Optional[str] = None
    ) -> AvailableSlotsResponse:
        """
        List free slots of an area, sorted by slot number

        The layout is bootstrapped and reconciled first. With a type filter,
        slots of that type and untyped slots are returned.
        """
        type_filter = None if is_blank(vehicle_type) else self._parse_vehicle_type(vehicle_type)

        with self._locked_area(area_id) as area:
            self._refresh(area)

        slots = [
            slot for slot in area.free_slots()
            if type_filter is None or slot.vehicle_type is None or slot.vehicle_type is type_filter
        ]
        self.logger.debug(f"Parking area {area.id}: {len(slots)} free slots for filter {type_filter}")

        return AvailableSlotsResponse(
            parking_area=AreaSummaryDTO.from_area(area),
            available_slots=[SlotDTO.from_slot(slot) for slot in slots],
            vehicle_type=type_filter.value if type_filter else None,
        )

    # ========================================================================
    # SLOT ALLOCATION
    # ========================================================================

    def register_and_assign(self, request: RegisterVehicleRequest) -> SlotAssignmentResponse:
        """
        Register a vehicle and bind it to the requested slot

        Raises: ParkingError with the first failing check, in this order:
            MISSING_FIELDS, INVALID_EMAIL, INVALID_PHONE, INVALID_PLATE,
            INVALID_VEHICLE_TYPE, VEHICLE_ALREADY_PARKED,
            PARKING_AREA_NOT_FOUND, INVALID_SLOT_NUMBER, SLOT_OCCUPIED,
            SLOT_TYPE_MISMATCH, NO_AVAILABLE_SLOTS
        """
        registration = self._validate_registration(request, require_slot=True)
        self._ensure_not_parked(registration.plate)

        with self._locked_area(registration.area_id) as area:
            self._refresh(area)
            self._ensure_not_parked(registration.plate)

            slot_number = parse_slot_number(request.slot_number)
            slot = area.get_slot(slot_number) if slot_number is not None else None
            if slot is None:
                raise InvalidInputError(
                    ErrorCode.INVALID_SLOT_NUMBER,
                    "Invalid slot number",
                    {"slotNumber": request.slot_number},
                )
            if slot.is_occupied:
                raise ConflictError(
                    ErrorCode.SLOT_OCCUPIED,
                    "Slot is already occupied",
                    {"slotNumber": slot.slot_number},
                )
            if not slot.accepts(registration.vehicle_type):
                raise ConflictError(
                    ErrorCode.SLOT_TYPE_MISMATCH,
                    f"Slot {slot.slot_number} is reserved for {slot.vehicle_type}, "
                    f"not {registration.vehicle_type}",
                    {
                        "slotNumber": slot.slot_number,
                        "slotType": slot.vehicle_type.value if slot.vehicle_type else None,
                        "vehicleType": registration.vehicle_type.value,
                    },
                )
            self._ensure_capacity_left(area)

            return self._bind(area, slot, registration)

    def register_and_auto_assign(self, request: RegisterVehicleRequest) -> SlotAssignmentResponse:
        """
        Register a vehicle and let the selection strategy choose the slot

        Same checks as register_and_assign, without a requested slot number.
        """
        registration = self._validate_registration(request, require_slot=False)
        self._ensure_not_parked(registration.plate)

        with self._locked_area(registration.area_id) as area:
            self._refresh(area)
            self._ensure_not_parked(registration.plate)
            self._ensure_capacity_left(area)

            slot = self.selection_strategy.select_slot(area, registration.vehicle_type)
            if slot is None:
                raise ConflictError(
                    ErrorCode.NO_AVAILABLE_SLOTS,
                    f"No available {registration.vehicle_type} slots in this parking area",
                    {"vehicleType": registration.vehicle_type.value},
                )
            return self._bind(area, slot, registration)

    def _bind(self, area: ParkingArea, slot: Slot, registration: _Registration) -> SlotAssignmentResponse:
        """Create user and vehicle, occupy the slot, persist the area once"""
        now = self.clock()
        user = self.users.get_or_create(
            email=registration.email,
            name=registration.name,
            phone=registration.phone or None,
        )

        vehicle = Vehicle(
            plate=registration.plate,
            vehicle_type=registration.vehicle_type,
            parking_area_id=area.id,
            slot_number=slot.slot_number,
            status=VehicleStatus.PARKED,
            user_id=user.id,
            user_email=registration.email,
            user_name=registration.name,
            user_phone=registration.phone or None,
            entry_time=now,
            created_by=registration.created_by,
        )
        self.vehicles.add(vehicle)

        slot.occupy(vehicle.id, now)
        area.record_entry()
        area.touch()
        self._persist(area)

        self.logger.info(
            f"Vehicle {vehicle.plate} ({vehicle.vehicle_type}) parked in slot {slot.slot_number} "
            f"of {area.name} [{area.available_slots}/{area.total_slots} available]"
        )
        self._notify(area, ChangeKind.SLOT_OCCUPIED, slotNumber=slot.slot_number, vehicleId=vehicle.id)

        return SlotAssignmentResponse(
            vehicle=VehicleDTO.from_vehicle(vehicle, area=area, user=user),
            parking_area=AreaSummaryDTO.from_area(area),
        )

    # ========================================================================
    # SLOT RELEASE
    # ========================================================================

    def release_slot(
        self,
        vehicle_id: str,
        exit_time: Optional[datetime] = None
    ) -> SlotReleaseResponse:
        """
        Exit a vehicle and free the slot it occupies

        Raises: VEHICLE_NOT_FOUND, VEHICLE_ALREADY_EXITED, PARKING_AREA_NOT_FOUND
        """
        vehicle = self._get_vehicle(vehicle_id)
        self._ensure_not_exited(vehicle)
        if not vehicle.parking_area_id:
            raise self._area_not_found(None)

        with self._locked_area(vehicle.parking_area_id) as area:
            # Re-read under the lock; a concurrent release may have won
            vehicle = self._get_vehicle(vehicle_id)
            self._ensure_not_exited(vehicle)

            vehicle.mark_exited(exit_time or self.clock())

            slot = area.get_slot(vehicle.slot_number) if vehicle.slot_number is not None else None
            if slot is None or str(slot.occupant_vehicle_id) != str(vehicle.id):
                held = area.find_slot_by_occupant(vehicle.id)
                if held is not None:
                    self.logger.warning(
                        f"Vehicle {vehicle.id} found in slot {held.slot_number} "
                        f"instead of recorded slot {vehicle.slot_number}"
                    )
                    slot = held
                elif slot is not None and slot.occupant_vehicle_id is not None:
                    # Recorded slot now belongs to another vehicle
                    slot = None

            if slot is not None:
                slot.vacate()
            else:
                self.logger.warning(f"No slot held by vehicle {vehicle.id} in parking area {area.id}")

            self.vehicles.update(vehicle)
            if area.has_layout:
                # Counters follow the remaining active vehicles, not the stored values
                reconcile_occupancy(area, self.vehicles.find_active_by_area(area.id))
            else:
                area.record_exit()
            area.touch()
            self._persist(area)

        self.logger.info(
            f"Vehicle {vehicle.plate} left slot {vehicle.slot_number} of {area.name} "
            f"[{area.available_slots}/{area.total_slots} available]"
        )
        self._notify(area, ChangeKind.SLOT_FREED, slotNumber=vehicle.slot_number, vehicleId=vehicle.id)

        return SlotReleaseResponse(
            vehicle=VehicleDTO.from_vehicle(vehicle),
            parking_area=AreaSummaryDTO.from_area(area),
        )

    # ========================================================================
    # PAYMENT
    # ========================================================================

    def mark_paid(self, vehicle_id: str) -> PaymentRecordedResponse:
        """Mark an active vehicle as paid; it keeps its slot until exit"""
        vehicle = self._get_vehicle(vehicle_id)
        self._ensure_not_exited(vehicle)

        area_lock = self.locks.acquire(vehicle.parking_area_id) if vehicle.parking_area_id else nullcontext()
        with area_lock:
            # Re-read under the lock; a concurrent release may have won
            vehicle = self._get_vehicle(vehicle_id)
            self._ensure_not_exited(vehicle)

            if vehicle.status is VehicleStatus.PAID:
                return PaymentRecordedResponse(
                    message="Payment already recorded", vehicle=VehicleDTO.from_vehicle(vehicle)
                )

            vehicle.mark_paid()
            self.vehicles.update(vehicle)
        self.logger.info(f"Payment recorded for vehicle {vehicle.plate}")

        if vehicle.parking_area_id:
            self._publish(
                vehicle.parking_area_id,
                ChangeKind.PAYMENT_RECORDED,
                {"vehicleId": vehicle.id, "slotNumber": vehicle.slot_number},
            )
        return PaymentRecordedResponse(vehicle=VehicleDTO.from_vehicle(vehicle))

    # ========================================================================
    # ADMINISTRATION
    # ========================================================================

    def create_area(self, request: CreateAreaRequest) -> AreaOperationResponse:
        """
        Create a parking area with its layout already generated

        A nonzero per-type breakdown defines the total.
        Raises: MISSING_FIELDS, INVALID_CAPACITY, INVALID_TOTAL_SLOTS
        """
        missing = [
            label for label, value in (("name", request.name), ("address", request.address))
            if is_blank(value)
        ]
        if missing:
            raise InvalidInputError(ErrorCode.MISSING_FIELDS, "Missing required fields", {"fields": missing})

        capacity = TypeCapacity(
            car=request.car_slots,
            bike=request.bike_slots,
            van=request.van_slots,
            three_wheeler=request.three_wheeler_slots,
        )
        total = self._resolve_total(capacity, request.total_slots)

        area = ParkingArea(
            name=request.name.strip(),
            address=request.address.strip(),
            total_slots=total,
            capacity=capacity,
            latitude=request.latitude,
            longitude=request.longitude,
            active=request.active,
            created_by=request.created_by,
        )
        generate_layout(area)
        self.areas.add(area)

        self.logger.info(f"Created parking area {area.name} ({area.id}) with {total} slots, {capacity}")
        self._notify(area, ChangeKind.AREA_CREATED)
        return AreaOperationResponse(message="Parking area created", parking_area=AreaDetailDTO.from_area(area))

    def initialize_slots(self, area_id: str) -> AreaOperationResponse:
        """Generate the layout of an area if it has none (idempotent)"""
        with self._locked_area(area_id) as area:
            changed = generate_layout(area)
            if changed:
                self._persist(area)

        if changed:
            self._notify(area, ChangeKind.SLOTS_INITIALIZED)
        message = "Parking area slots initialized successfully" if changed else "Parking area slots already initialized"
        return AreaOperationResponse(message=message, parking_area=AreaDetailDTO.from_area(area), changed=changed)

    def recalculate_counts(self, area_id: str) -> AreaOperationResponse:
        """Rewrite counters and slot links from the active vehicles"""
        with self._locked_area(area_id) as area:
            generate_layout(area)
            rebuild_occupancy(area, self.vehicles.find_active_by_area(area.id))
            self._persist(area)

        self._notify(area, ChangeKind.COUNTS_RECALCULATED)
        return AreaOperationResponse(
            message="Slot counts recalculated successfully",
            parking_area=AreaDetailDTO.from_area(area),
        )

    def update_capacity(self, area_id: str, request: AreaCapacityRequest) -> AreaOperationResponse:
        """
        Change the total and/or per-type capacity of an area

        The occupied count is taken from the area's counter. An initialized
        layout is resized, then free slots are retyped toward the new mix.
        Raises: INVALID_CAPACITY, INVALID_TOTAL_SLOTS
        """
        with self._locked_area(area_id) as area:
            occupied = area.occupied_slots
            current = area.capacity
            capacity = current
            if request.has_type_counts():
                capacity = TypeCapacity(
                    car=self._pick(request.car_slots, current.car),
                    bike=self._pick(request.bike_slots, current.bike),
                    van=self._pick(request.van_slots, current.van),
                    three_wheeler=self._pick(request.three_wheeler_slots, current.three_wheeler),
                )

            requested_total = request.total_slots
            if requested_total is None and not capacity.is_typed:
                requested_total = area.total_slots
            new_total = self._resolve_total(capacity, requested_total)

            if new_total < occupied:
                raise CapacityError(
                    ErrorCode.INVALID_TOTAL_SLOTS,
                    f"Total slots ({new_total}) cannot be less than occupied slots ({occupied})",
                    {"requestedTotal": new_total, "occupiedSlots": occupied},
                )

            previous_total = area.total_slots
            resize_layout(area, new_total)
            area.total_slots = new_total
            area.capacity = capacity
            area.set_counters(occupied)
            align_slot_types(area)
            area.touch()
            self._persist(area)

        self.logger.info(
            f"Parking area {area.id} capacity changed from {previous_total} to {new_total} slots ({capacity})"
        )
        self._notify(area, ChangeKind.CAPACITY_UPDATED, previousTotal=previous_total)
        return AreaOperationResponse(message="Parking area capacity updated", parking_area=AreaDetailDTO.from_area(area))

    def set_area_active(self, area_id: str, active: bool) -> AreaOperationResponse:
        with self._locked_area(area_id) as area:
            changed = area.active != active
            if changed:
                area.active = active
                area.touch()
                self._persist(area)

        if changed:
            self._notify(area, ChangeKind.AREA_STATUS_CHANGED, active=active)
        return AreaOperationResponse(
            message="Parking area activated" if active else "Parking area deactivated",
            parking_area=AreaDetailDTO.from_area(area),
            changed=changed,
        )

    def get_area(self, area_id: str) -> AreaDetailDTO:
        return AreaDetailDTO.from_area(self._get_area(area_id))

    def list_areas(self, active_only: bool = True) -> List[AreaSummaryDTO]:
        areas = sorted(self.areas.list(active_only=active_only), key=lambda area: area.name.lower())
        return [AreaSummaryDTO.from_area(area) for area in areas]

    def list_current_vehicles(self, area_id: Optional[str] = None) -> List[VehicleDTO]:
        """Active vehicles, most recent entry first"""
        if area_id:
            vehicles = self.vehicles.find_active_by_area(area_id)
        else:
            vehicles = self.vehicles.list_active()
        vehicles = sorted(vehicles, key=lambda vehicle: vehicle.entry_time, reverse=True)
        return [VehicleDTO.from_vehicle(vehicle) for vehicle in vehicles]

    # ========================================================================
    # HELPERS
    # ========================================================================

    @contextmanager
    def _locked_area(self, area_id: str) -> Iterator[ParkingArea]:
        """Hold the area lock and yield a fresh copy of the area"""
        self._get_area(area_id)
        with self.locks.acquire(area_id):
            yield self._get_area(area_id)

    def _refresh(self, area: ParkingArea) -> bool:
        """Bootstrap the layout and run both reconcilers, persisting corrections"""
        changed = generate_layout(area)
        changed = reconcile_occupancy(area, self.vehicles.find_active_by_area(area.id)) or changed
        changed = align_slot_types(area) or changed
        if changed:
            self._persist(area)
            self._notify(area, ChangeKind.SLOTS_RECONCILED)
        return changed

    def _persist(self, area: ParkingArea) -> None:
        for problem in area.invariant_violations():
            self.logger.warning(f"Parking area {area.id}: {problem}")
        self.areas.update(area)

    def _notify(self, area: ParkingArea, kind: ChangeKind, **payload: Any) -> None:
        self._publish(area.id, kind, {"parkingArea": AreaSummaryDTO.from_area(area).to_dict(), **payload})

    def _publish(self, area_id: str, kind: ChangeKind, payload: Dict[str, Any]) -> None:
        """Hand a committed change to the event sink; sink errors never reach the caller"""
        try:
            self.events.notify(area_id, kind, payload)
        except Exception as e:
            self.logger.error(f"Event sink failed for {kind.value} on parking area {area_id}: {e}", exc_info=True)

    def _get_area(self, area_id: Optional[str]) -> ParkingArea:
        area = self.areas.get(area_id) if area_id else None
        if area is None:
            raise self._area_not_found(area_id)
        return area

    @staticmethod
    def _area_not_found(area_id: Optional[str]) -> NotFoundError:
        return NotFoundError(
            ErrorCode.PARKING_AREA_NOT_FOUND,
            "Parking area not found",
            {"parkingAreaId": area_id},
        )

    def _get_vehicle(self, vehicle_id: str) -> Vehicle:
        vehicle = self.vehicles.get(vehicle_id) if vehicle_id else None
        if vehicle is None:
            raise NotFoundError(ErrorCode.VEHICLE_NOT_FOUND, "Vehicle not found", {"vehicleId": vehicle_id})
        return vehicle

    @staticmethod
    def _ensure_not_exited(vehicle: Vehicle) -> None:
        if vehicle.status is VehicleStatus.EXITED:
            raise ConflictError(
                ErrorCode.VEHICLE_ALREADY_EXITED,
                "Vehicle has already exited",
                {"vehicleId": vehicle.id},
            )

    def _ensure_not_parked(self, plate: str) -> None:
        if self.vehicles.find_active_by_plate(plate) is not None:
            raise ConflictError(
                ErrorCode.VEHICLE_ALREADY_PARKED,
                f"Vehicle with plate {plate} is already parked",
                {"plate": plate},
            )

    @staticmethod
    def _ensure_capacity_left(area: ParkingArea) -> None:
        if area.available_slots <= 0:
            raise ConflictError(
                ErrorCode.NO_AVAILABLE_SLOTS,
                "No available slots in this parking area",
                {"parkingAreaId": area.id},
            )

    @staticmethod
    def _parse_vehicle_type(value: Any) -> VehicleType:
        vehicle_type = normalize_vehicle_type(value)
        if vehicle_type is None:
            raise InvalidInputError(
                ErrorCode.INVALID_VEHICLE_TYPE,
                f"Unknown vehicle type: {value}",
                {"vehicleType": value, "allowed": [member.value for member in VehicleType]},
            )
        return vehicle_type

    def _validate_registration(self, request: RegisterVehicleRequest, require_slot: bool) -> _Registration:
        """Field checks that run before any state is read"""
        required: List[Tuple[str, Any]] = [
            ("plate", request.plate),
            ("userName", request.user_name),
            ("userEmail", request.user_email),
            ("parkingAreaId", request.parking_area_id),
        ]
        if require_slot:
            required.append(("slotNumber", request.slot_number))
        missing = [label for label, value in required if is_blank(value)]
        if missing:
            raise InvalidInputError(ErrorCode.MISSING_FIELDS, "Missing required fields", {"fields": missing})

        if not is_valid_email(request.user_email):
            raise InvalidInputError(ErrorCode.INVALID_EMAIL, "Invalid email address", {"userEmail": request.user_email})
        if not is_valid_phone(request.user_phone):
            raise InvalidInputError(ErrorCode.INVALID_PHONE, "Invalid phone number", {"userPhone": request.user_phone})
        if not is_valid_plate(request.plate):
            raise InvalidInputError(ErrorCode.INVALID_PLATE, "Invalid plate number", {"plate": request.plate})

        vehicle_type = (
            FALLBACK_VEHICLE_TYPE if is_blank(request.vehicle_type)
            else self._parse_vehicle_type(request.vehicle_type)
        )

        return _Registration(
            plate=normalize_plate(request.plate),
            email=normalize_email(request.user_email),
            name=request.user_name.strip(),
            phone=normalize_phone(request.user_phone),
            vehicle_type=vehicle_type,
            area_id=request.parking_area_id.strip(),
            created_by=request.created_by,
        )

    @staticmethod
    def _resolve_total(capacity: TypeCapacity, requested_total: Optional[int]) -> int:
        """Total implied by a capacity and an optional flat total"""
        if capacity.is_typed:
            if requested_total is not None and requested_total != capacity.total():
                raise CapacityError(
                    ErrorCode.INVALID_CAPACITY,
                    f"Per-type slots add up to {capacity.total()}, not {requested_total}",
                    {"perTypeTotal": capacity.total(), "totalSlots": requested_total},
                )
            return capacity.total()
        if requested_total is None:
            raise InvalidInputError(ErrorCode.MISSING_FIELDS, "Missing required fields", {"fields": ["totalSlots"]})
        if requested_total <= 0:
            raise CapacityError(
                ErrorCode.INVALID_TOTAL_SLOTS,
                "Total slots must be a positive integer",
                {"totalSlots": requested_total},
            )
        return requested_total

    @staticmethod
    def _pick(value: Optional[int], default: int) -> int:
        return default if value is None else value
