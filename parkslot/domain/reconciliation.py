# File: parkslot/domain/reconciliation.py
"""
Occupancy and type reconciliation for parking areas

The vehicle collection is the ground truth for occupancy; the slot list and
the area counters are caches derived from it. A crash between inserting a
vehicle and saving its area leaves the caches stale, and the functions here
bring them back in line the next time an area is read for allocation or
display.

1. reconcile_occupancy - incremental drift correction, reports whether
   anything changed so callers only write when needed
2. rebuild_occupancy   - admin "recalculate": rewrites every slot link
3. align_slot_types    - steers free slots toward the current per-type mix

None of these raise on drift. They log it and fix it.
"""

from typing import Dict, Iterable, List
import logging

from .layout import build_type_sequence
from .models import ParkingArea, Vehicle, normalize_vehicle_type

logger = logging.getLogger(__name__)


def _index_active_vehicles(area: ParkingArea, vehicles: Iterable[Vehicle]) -> Dict[int, Vehicle]:
    """Map slot number -> active vehicle of this area"""
    by_slot: Dict[int, Vehicle] = {}
    for vehicle in vehicles:
        if not vehicle.is_active or str(vehicle.parking_area_id) != str(area.id):
            continue
        if vehicle.slot_number is None:
            continue
        if vehicle.slot_number in by_slot:
            logger.warning(
                f"Parking area {area.id}: slot {vehicle.slot_number} claimed by both "
                f"{by_slot[vehicle.slot_number].id} and {vehicle.id}, keeping the earlier entry"
            )
            if vehicle.entry_time >= by_slot[vehicle.slot_number].entry_time:
                continue
        by_slot[vehicle.slot_number] = vehicle
    return by_slot


def reconcile_occupancy(area: ParkingArea, active_vehicles: Iterable[Vehicle]) -> bool:
    """
    Recompute slot occupancy and counters from the active vehicles

    Free slots lose their occupant link. Occupied slots are bound to the
    vehicle that actually holds them.
    Returns: True if the area changed and should be persisted
    """
    by_slot = _index_active_vehicles(area, active_vehicles)
    changed = False

    for slot in area.slots:
        vehicle = by_slot.get(slot.slot_number)
        if vehicle is None:
            if slot.is_occupied or slot.occupant_vehicle_id is not None or slot.occupied_at is not None:
                logger.warning(
                    f"Parking area {area.id}: clearing stale occupancy of slot {slot.slot_number} "
                    f"(vehicle {slot.occupant_vehicle_id})"
                )
                slot.vacate()
                changed = True
            continue

        if not slot.is_occupied:
            logger.warning(
                f"Parking area {area.id}: slot {slot.slot_number} held by active vehicle "
                f"{vehicle.id} was flagged free"
            )
            slot.is_occupied = True
            changed = True
        if slot.occupant_vehicle_id is None or str(slot.occupant_vehicle_id) != str(vehicle.id):
            slot.occupant_vehicle_id = vehicle.id
            slot.occupied_at = vehicle.entry_time
            changed = True
        elif slot.occupied_at is None:
            slot.occupied_at = vehicle.entry_time
            changed = True

    known_numbers = {slot.slot_number for slot in area.slots}
    orphaned = sorted(number for number in by_slot if number not in known_numbers)
    if orphaned and area.has_layout:
        logger.warning(f"Parking area {area.id}: active vehicles reference missing slots {orphaned}")

    occupied = area.occupied_slot_count()
    available = max(0, area.total_slots - occupied)
    if area.occupied_slots != occupied or area.available_slots != available:
        logger.info(
            f"Parking area {area.id}: counters corrected from "
            f"{area.available_slots}/{area.occupied_slots} to {available}/{occupied} (available/occupied)"
        )
        area.occupied_slots = occupied
        area.available_slots = available
        changed = True

    if changed:
        area.touch()
    return changed


def rebuild_occupancy(area: ParkingArea, active_vehicles: Iterable[Vehicle]) -> None:
    """
    Rewrite counters and every slot link from scratch

    Counters come from the number of active vehicles in the area, including
    vehicles without a slot number.
    """
    vehicles: List[Vehicle] = [
        vehicle for vehicle in active_vehicles
        if vehicle.is_active and str(vehicle.parking_area_id) == str(area.id)
    ]
    by_slot = _index_active_vehicles(area, vehicles)

    area.set_counters(len(vehicles))
    for slot in area.slots:
        vehicle = by_slot.get(slot.slot_number)
        if vehicle is None:
            slot.vacate()
        else:
            slot.is_occupied = True
            slot.occupant_vehicle_id = vehicle.id
            slot.occupied_at = vehicle.entry_time
    area.touch()

    logger.info(
        f"Parking area {area.id}: recalculated counts, "
        f"{area.occupied_slots} occupied / {area.available_slots} available"
    )


def align_slot_types(area: ParkingArea) -> bool:
    """
    Retype free slots to match the area's current per-type capacity

    Occupied slots keep their type until released. Areas without a per-type
    breakdown are left alone.
    Returns: True if any slot was retyped
    """
    if not area.capacity.is_typed or not area.has_layout:
        return False

    ordered = area.sorted_slots()
    desired = build_type_sequence(area.capacity, len(ordered))
    retyped = []

    for slot, wanted in zip(ordered, desired):
        if slot.is_occupied:
            continue
        if normalize_vehicle_type(slot.vehicle_type) is not wanted:
            slot.vehicle_type = wanted
            retyped.append(slot.slot_number)

    if retyped:
        area.touch()
        logger.info(f"Parking area {area.id}: retyped free slots {retyped} to match {area.capacity}")
    return bool(retyped)
