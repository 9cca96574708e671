#!/usr/bin/env python3
"""
Integration tests: concurrent requests against one parking area
Many threads race for the same slots; area locking must keep every slot
bound to at most one vehicle and the counters in step with the layout.
"""

import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from typing import List

from parkslot.domain.errors import ErrorCode, ParkingError
from parkslot.infrastructure.locking import InProcessAreaLockManager

from tests.helpers import build_service, legacy_area, registration

WORKERS = 8


class TestConcurrentAllocation(unittest.TestCase):

    def setUp(self):
        self.service, self.repos, self.recorder = build_service(locks=InProcessAreaLockManager(wait_seconds=10))
        self.area = legacy_area(total=4, car=4, bike=0)
        self.repos.areas.add(self.area)
        self.barrier = threading.Barrier(WORKERS)

    def race(self, call, requests) -> List[object]:
        def attempt(request):
            self.barrier.wait()
            try:
                return call(request)
            except ParkingError as e:
                return e

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            return list(pool.map(attempt, requests))

    def test_one_winner_per_slot(self):
        requests = [
            registration(parkingAreaId=self.area.id, slotNumber=1, plate=f"CAR-{index:04d}",
                         userEmail=f"driver{index}@example.com")
            for index in range(WORKERS)
        ]
        outcomes = self.race(self.service.register_and_assign, requests)

        winners = [outcome for outcome in outcomes if not isinstance(outcome, ParkingError)]
        losers = [outcome for outcome in outcomes if isinstance(outcome, ParkingError)]
        self.assertEqual(len(winners), 1)
        self.assertTrue(all(error.code is ErrorCode.SLOT_OCCUPIED for error in losers))

        stored = self.repos.areas.get(self.area.id)
        self.assertEqual(stored.get_slot(1).occupant_vehicle_id, winners[0].vehicle.id)
        self.assertEqual((stored.available_slots, stored.occupied_slots), (3, 1))
        self.assertEqual(len(self.repos.vehicles.list_active()), 1)

    def test_auto_assign_never_overbooks(self):
        requests = [
            registration(parkingAreaId=self.area.id, slotNumber=None, plate=f"CAR-{index:04d}",
                         userEmail=f"driver{index}@example.com")
            for index in range(WORKERS)
        ]
        outcomes = self.race(self.service.register_and_auto_assign, requests)

        winners = [outcome for outcome in outcomes if not isinstance(outcome, ParkingError)]
        losers = [outcome for outcome in outcomes if isinstance(outcome, ParkingError)]
        self.assertEqual(len(winners), 4)
        self.assertEqual(sorted(result.vehicle.slot_number for result in winners), [1, 2, 3, 4])
        self.assertTrue(all(error.code is ErrorCode.NO_AVAILABLE_SLOTS for error in losers))

        stored = self.repos.areas.get(self.area.id)
        self.assertEqual((stored.available_slots, stored.occupied_slots), (0, 4))
        self.assertEqual(stored.invariant_violations(), [])

    def test_parallel_releases(self):
        parked = [
            self.service.register_and_assign(
                registration(parkingAreaId=self.area.id, slotNumber=number, plate=f"CAR-{number:04d}")
            ).vehicle.id
            for number in range(1, 5)
        ]
        # Each vehicle released twice at once
        self.barrier = threading.Barrier(len(parked) * 2)
        with ThreadPoolExecutor(max_workers=len(parked) * 2) as pool:
            def attempt(vehicle_id):
                self.barrier.wait()
                try:
                    return self.service.release_slot(vehicle_id)
                except ParkingError as e:
                    return e

            outcomes = list(pool.map(attempt, parked + parked))

        errors = [outcome for outcome in outcomes if isinstance(outcome, ParkingError)]
        self.assertEqual(len(errors), 4)
        self.assertTrue(all(error.code is ErrorCode.VEHICLE_ALREADY_EXITED for error in errors))

        stored = self.repos.areas.get(self.area.id)
        self.assertEqual((stored.available_slots, stored.occupied_slots), (4, 0))
        self.assertEqual(stored.invariant_violations(), [])


if __name__ == '__main__':
    unittest.main()
