#!/usr/bin/env python3
"""
Occupancy and Type Alignment Reconciler Unit Tests
"""

import unittest
from datetime import datetime, timedelta, timezone

from parkslot.domain.layout import generate_layout
from parkslot.domain.models import (
    ParkingArea, TypeCapacity, Vehicle, VehicleStatus, VehicleType
)
from parkslot.domain.reconciliation import align_slot_types, rebuild_occupancy, reconcile_occupancy

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def _vehicle(area, slot_number, minutes=0, status=VehicleStatus.PARKED, vehicle_type=VehicleType.CAR):
    return Vehicle(
        plate=f"PLT-{slot_number}{minutes}",
        vehicle_type=vehicle_type,
        parking_area_id=area.id,
        slot_number=slot_number,
        status=status,
        entry_time=T0 + timedelta(minutes=minutes),
    )


class TestReconcileOccupancy(unittest.TestCase):

    def setUp(self):
        self.area = ParkingArea(name="Mall", address="x", total_slots=4)
        generate_layout(self.area)

    def test_marks_held_slots_and_recomputes_counters(self):
        vehicle = _vehicle(self.area, 2)
        self.assertTrue(reconcile_occupancy(self.area, [vehicle]))

        slot = self.area.get_slot(2)
        self.assertTrue(slot.is_occupied)
        self.assertEqual(slot.occupant_vehicle_id, vehicle.id)
        self.assertEqual(slot.occupied_at, vehicle.entry_time)
        self.assertEqual((self.area.available_slots, self.area.occupied_slots), (3, 1))

    def test_clears_stale_occupancy(self):
        self.area.get_slot(3).occupy("ghost")
        self.area.set_counters(1)
        self.assertTrue(reconcile_occupancy(self.area, []))
        self.assertFalse(self.area.get_slot(3).is_occupied)
        self.assertIsNone(self.area.get_slot(3).occupant_vehicle_id)
        self.assertEqual((self.area.available_slots, self.area.occupied_slots), (4, 0))

    def test_rebinds_wrong_occupant(self):
        vehicle = _vehicle(self.area, 1)
        self.area.get_slot(1).occupy("someone-else")
        self.area.set_counters(1)
        self.assertTrue(reconcile_occupancy(self.area, [vehicle]))
        self.assertEqual(self.area.get_slot(1).occupant_vehicle_id, vehicle.id)

    def test_ignores_exited_and_foreign_vehicles(self):
        exited = _vehicle(self.area, 1, status=VehicleStatus.EXITED)
        foreign = _vehicle(self.area, 2)
        foreign.parking_area_id = "another-area"
        reconcile_occupancy(self.area, [exited, foreign])
        self.assertEqual(self.area.occupied_slot_count(), 0)

    def test_paid_vehicle_still_occupies(self):
        reconcile_occupancy(self.area, [_vehicle(self.area, 4, status=VehicleStatus.PAID)])
        self.assertTrue(self.area.get_slot(4).is_occupied)

    def test_duplicate_claim_keeps_earlier_entry(self):
        early = _vehicle(self.area, 2, minutes=0)
        late = _vehicle(self.area, 2, minutes=30)
        reconcile_occupancy(self.area, [late, early])
        self.assertEqual(self.area.get_slot(2).occupant_vehicle_id, early.id)
        self.assertEqual(self.area.occupied_slots, 1)

    def test_converges(self):
        self.area.get_slot(1).occupy("ghost")
        vehicles = [_vehicle(self.area, 3)]
        self.assertTrue(reconcile_occupancy(self.area, vehicles))
        self.assertFalse(reconcile_occupancy(self.area, vehicles))
        self.assertEqual(self.area.invariant_violations(), [])

    def test_consistent_area_is_unchanged(self):
        self.assertFalse(reconcile_occupancy(self.area, []))


class TestRebuildOccupancy(unittest.TestCase):

    def test_counts_every_active_vehicle_and_rewrites_links(self):
        area = ParkingArea(name="Mall", address="x", total_slots=3)
        generate_layout(area)
        area.get_slot(3).occupy("ghost")
        area.available_slots, area.occupied_slots = 0, 3

        in_slot = _vehicle(area, 1)
        no_slot = _vehicle(area, None)
        rebuild_occupancy(area, [in_slot, no_slot])

        self.assertEqual((area.available_slots, area.occupied_slots), (1, 2))
        self.assertEqual(area.get_slot(1).occupant_vehicle_id, in_slot.id)
        self.assertFalse(area.get_slot(3).is_occupied)


class TestAlignSlotTypes(unittest.TestCase):

    def test_occupied_slots_keep_their_type(self):
        area = ParkingArea(name="Mall", address="x", total_slots=3, capacity=TypeCapacity(car=2, bike=1))
        generate_layout(area)
        area.get_slot(1).occupy("car-1")

        area.capacity = TypeCapacity(bike=3)
        self.assertTrue(align_slot_types(area))

        self.assertIs(area.get_slot(1).vehicle_type, VehicleType.CAR)
        self.assertIs(area.get_slot(2).vehicle_type, VehicleType.BIKE)
        self.assertIs(area.get_slot(3).vehicle_type, VehicleType.BIKE)
        self.assertFalse(align_slot_types(area))

    def test_untyped_area_left_alone(self):
        area = ParkingArea(name="Mall", address="x", total_slots=2)
        generate_layout(area)
        area.get_slot(2).vehicle_type = VehicleType.VAN
        self.assertFalse(align_slot_types(area))
        self.assertIs(area.get_slot(2).vehicle_type, VehicleType.VAN)

    def test_released_slot_is_retyped_later(self):
        area = ParkingArea(name="Mall", address="x", total_slots=2, capacity=TypeCapacity(car=2))
        generate_layout(area)
        area.get_slot(1).occupy("car-1")
        area.capacity = TypeCapacity(van=2)
        align_slot_types(area)
        self.assertIs(area.get_slot(1).vehicle_type, VehicleType.CAR)

        area.get_slot(1).vacate()
        self.assertTrue(align_slot_types(area))
        self.assertIs(area.get_slot(1).vehicle_type, VehicleType.VAN)


if __name__ == '__main__':
    unittest.main()
