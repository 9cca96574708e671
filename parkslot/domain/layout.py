# File: parkslot/domain/layout.py
"""
Slot Layout Generator

Derives the ordered slot list of a parking area from its declared capacity
and resizes an existing layout when the capacity changes.

Layout rules:
1. Typed areas get `car` Car slots, then Bike, Van and Three-wheeler slots,
   in that fixed order, padded with Car up to the total
2. Untyped areas (per-type sum of zero) get Car slots throughout
3. Slots are numbered 1..total and start unoccupied
4. Numbers are never reassigned; growing appends after the highest number,
   shrinking removes the highest-numbered unoccupied slots
"""

from typing import List
import logging

from .errors import CapacityError, ErrorCode
from .models import FALLBACK_VEHICLE_TYPE, ParkingArea, Slot, TypeCapacity, VehicleType

logger = logging.getLogger(__name__)


def build_type_sequence(capacity: TypeCapacity, length: int) -> List[VehicleType]:
    """
    Build the desired vehicle type for each layout position
    Returns: list of exactly `length` types
    """
    sequence: List[VehicleType] = []
    if capacity.is_typed:
        for vehicle_type, count in capacity.counts_in_layout_order():
            sequence.extend([vehicle_type] * count)
    if len(sequence) < length:
        sequence.extend([FALLBACK_VEHICLE_TYPE] * (length - len(sequence)))
    return sequence[:length]


def generate_layout(area: ParkingArea) -> bool:
    """
    Populate the slots of an area that has no layout yet

    Idempotent: an existing layout is never regenerated.
    Returns: True if a layout was generated
    """
    if area.has_layout:
        return False

    types = build_type_sequence(area.capacity, area.total_slots)
    area.slots = [
        Slot(slot_number=number, vehicle_type=vehicle_type)
        for number, vehicle_type in enumerate(types, start=1)
    ]
    area.set_counters(0)
    area.touch()

    logger.info(f"Generated {len(area.slots)} slots for parking area {area.id} ({area.capacity})")
    return True


def resize_layout(area: ParkingArea, new_total: int) -> bool:
    """
    Grow or shrink an initialized layout to `new_total` slots

    Raises: CapacityError if shrinking would remove an occupied slot
    Returns: True if the layout changed
    """
    if not area.has_layout:
        return False

    current = len(area.slots)
    if new_total == current:
        return False

    if new_total > current:
        next_number = area.max_slot_number() + 1
        for offset in range(new_total - current):
            area.slots.append(Slot(slot_number=next_number + offset, vehicle_type=FALLBACK_VEHICLE_TYPE))
        logger.info(f"Grew parking area {area.id} layout from {current} to {new_total} slots")
        return True

    to_remove = current - new_total
    removable = [slot for slot in reversed(area.sorted_slots()) if not slot.is_occupied]
    if len(removable) < to_remove:
        raise CapacityError(
            ErrorCode.INVALID_TOTAL_SLOTS,
            f"Cannot shrink to {new_total} slots: {current - len(removable)} slots are occupied",
            {"requestedTotal": new_total, "occupiedSlots": current - len(removable)},
        )

    removed_numbers = {slot.slot_number for slot in removable[:to_remove]}
    area.slots = [slot for slot in area.slots if slot.slot_number not in removed_numbers]
    logger.info(
        f"Shrank parking area {area.id} layout from {current} to {new_total} slots "
        f"(removed {sorted(removed_numbers)})"
    )
    return True
