#!/usr/bin/env python3
"""
Slot Selection Strategy Unit Tests
"""

import unittest

from parkslot.domain.layout import generate_layout
from parkslot.domain.models import ParkingArea, Slot, TypeCapacity, VehicleType
from parkslot.domain.strategies import (
    NearestEntryStrategy, TypedOnlyStrategy, create_slot_selection_strategy
)


class TestNearestEntryStrategy(unittest.TestCase):

    def setUp(self):
        self.strategy = NearestEntryStrategy()
        self.area = ParkingArea(name="A", address="x", total_slots=4, capacity=TypeCapacity(car=2, bike=2))
        generate_layout(self.area)

    def test_lowest_matching_slot(self):
        self.assertEqual(self.strategy.select_slot(self.area, VehicleType.BIKE).slot_number, 3)
        self.area.get_slot(1).occupy("v-1")
        self.assertEqual(self.strategy.select_slot(self.area, VehicleType.CAR).slot_number, 2)

    def test_typed_slot_preferred_over_untyped(self):
        self.area.slots.append(Slot(slot_number=5))
        self.area.slots[0].vehicle_type = None
        self.assertEqual(self.strategy.select_slot(self.area, VehicleType.CAR).slot_number, 2)

    def test_falls_back_to_untyped(self):
        self.area.slots.append(Slot(slot_number=5))
        self.assertEqual(self.strategy.select_slot(self.area, VehicleType.VAN).slot_number, 5)

    def test_none_when_no_compatible_slot(self):
        self.assertIsNone(self.strategy.select_slot(self.area, VehicleType.VAN))


class TestTypedOnlyStrategy(unittest.TestCase):

    def test_ignores_untyped_slots(self):
        area = ParkingArea(name="A", address="x", total_slots=2, slots=[Slot(slot_number=1), Slot(slot_number=2)])
        self.assertIsNone(TypedOnlyStrategy().select_slot(area, VehicleType.CAR))
        area.get_slot(2).vehicle_type = VehicleType.CAR
        self.assertEqual(TypedOnlyStrategy().select_slot(area, VehicleType.CAR).slot_number, 2)


class TestStrategyFactory(unittest.TestCase):

    def test_known_and_unknown_names(self):
        self.assertIsInstance(create_slot_selection_strategy("nearest_entry"), NearestEntryStrategy)
        self.assertIsInstance(create_slot_selection_strategy("typed_only"), TypedOnlyStrategy)
        self.assertEqual(str(create_slot_selection_strategy("typed_only")), "TypedOnly Strategy")
        with self.assertRaises(ValueError):
            create_slot_selection_strategy("random")


if __name__ == '__main__':
    unittest.main()
