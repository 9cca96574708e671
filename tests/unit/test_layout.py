#!/usr/bin/env python3
"""
Slot Layout Generator Unit Tests
"""

import unittest

from parkslot.domain.errors import CapacityError, ErrorCode
from parkslot.domain.layout import build_type_sequence, generate_layout, resize_layout
from parkslot.domain.models import ParkingArea, TypeCapacity, VehicleType

CAR, BIKE, VAN, THREE = VehicleType.CAR, VehicleType.BIKE, VehicleType.VAN, VehicleType.THREE_WHEELER


def _types(area):
    return [slot.vehicle_type for slot in area.sorted_slots()]


class TestBuildTypeSequence(unittest.TestCase):

    def test_fixed_type_order(self):
        capacity = TypeCapacity(car=1, bike=2, van=1, three_wheeler=1)
        self.assertEqual(build_type_sequence(capacity, 5), [CAR, BIKE, BIKE, VAN, THREE])

    def test_padding_with_car(self):
        self.assertEqual(build_type_sequence(TypeCapacity(bike=1), 3), [BIKE, CAR, CAR])

    def test_untyped(self):
        self.assertEqual(build_type_sequence(TypeCapacity(), 2), [CAR, CAR])

    def test_truncated_to_length(self):
        self.assertEqual(build_type_sequence(TypeCapacity(car=2, van=2), 3), [CAR, CAR, VAN])


class TestGenerateLayout(unittest.TestCase):

    def test_typed_area(self):
        area = ParkingArea(name="A", address="x", total_slots=3, capacity=TypeCapacity(car=2, bike=1))
        self.assertTrue(generate_layout(area))
        self.assertEqual([slot.slot_number for slot in area.sorted_slots()], [1, 2, 3])
        self.assertEqual(_types(area), [CAR, CAR, BIKE])
        self.assertTrue(all(not slot.is_occupied for slot in area.slots))
        self.assertEqual((area.available_slots, area.occupied_slots), (3, 0))

    def test_untyped_area_gets_car_slots(self):
        area = ParkingArea(name="A", address="x", total_slots=4)
        generate_layout(area)
        self.assertEqual(_types(area), [CAR] * 4)

    def test_idempotent(self):
        area = ParkingArea(name="A", address="x", total_slots=2)
        generate_layout(area)
        area.slots[0].occupy("v-1")
        self.assertFalse(generate_layout(area))
        self.assertTrue(area.get_slot(1).is_occupied)


class TestResizeLayout(unittest.TestCase):

    def setUp(self):
        self.area = ParkingArea(name="A", address="x", total_slots=4)
        generate_layout(self.area)

    def test_grow_appends_after_highest_number(self):
        self.assertTrue(resize_layout(self.area, 6))
        self.assertEqual([slot.slot_number for slot in self.area.sorted_slots()], [1, 2, 3, 4, 5, 6])
        self.assertFalse(self.area.get_slot(6).is_occupied)

    def test_shrink_removes_highest_free_slots(self):
        self.area.get_slot(4).occupy("v-4")
        self.assertTrue(resize_layout(self.area, 2))
        self.assertEqual([slot.slot_number for slot in self.area.sorted_slots()], [1, 4])
        self.assertTrue(self.area.get_slot(4).is_occupied)

    def test_shrink_below_occupied_refused_without_change(self):
        for number in (1, 2, 3):
            self.area.get_slot(number).occupy(f"v-{number}")
        with self.assertRaises(CapacityError) as ctx:
            resize_layout(self.area, 2)
        self.assertEqual(ctx.exception.code, ErrorCode.INVALID_TOTAL_SLOTS)
        self.assertEqual(len(self.area.slots), 4)

    def test_same_size_and_no_layout(self):
        self.assertFalse(resize_layout(self.area, 4))
        empty = ParkingArea(name="B", address="y", total_slots=3)
        self.assertFalse(resize_layout(empty, 5))
        self.assertEqual(empty.slots, [])


if __name__ == '__main__':
    unittest.main()
