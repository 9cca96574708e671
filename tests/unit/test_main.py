#!/usr/bin/env python3
"""
Command Line Interface Tests
"""

import io
import json
import os
import unittest
from unittest.mock import patch

from parkslot.main import build_parser, build_payload, main


def _payload(*argv):
    return build_payload(build_parser().parse_args(list(argv)))


class TestBuildPayload(unittest.TestCase):

    def test_register(self):
        payload = _payload(
            "register", "area-1", "abc-123", "--slot", "2", "--type", "Bike",
            "--name", "Nimal", "--email", "nimal@example.com",
        )
        self.assertEqual(payload, {
            "command": "register_and_assign",
            "parkingAreaId": "area-1",
            "plate": "abc-123",
            "slotNumber": "2",
            "vehicleType": "Bike",
            "userName": "Nimal",
            "userEmail": "nimal@example.com",
        })

    def test_create_area_counts(self):
        payload = _payload("create-area", "Mall", "1 Road", "--cars", "3", "--bikes", "1")
        self.assertEqual(payload["command"], "create_area")
        self.assertEqual((payload["carSlots"], payload["bikeSlots"], payload["vanSlots"]), (3, 1, 0))
        self.assertNotIn("totalSlots", payload)

    def test_activate_and_deactivate(self):
        self.assertEqual(_payload("activate", "area-1"),
                         {"command": "set_area_active", "parkingAreaId": "area-1", "active": True})
        self.assertFalse(_payload("deactivate", "area-1")["active"])

    def test_areas_flag(self):
        self.assertEqual(_payload("areas"), {"command": "list_areas", "activeOnly": True})
        self.assertEqual(_payload("areas", "--all"), {"command": "list_areas", "activeOnly": False})

    def test_raw_payload(self):
        self.assertEqual(_payload("run", '{"command": "list_areas"}'), {"command": "list_areas"})
        with patch("sys.stdin", io.StringIO('{"command": "mark_paid", "vehicleId": "v-1"}')):
            self.assertEqual(_payload("run", "-")["vehicleId"], "v-1")


@patch.dict(os.environ, {}, clear=True)
class TestMain(unittest.TestCase):

    def run_main(self, *argv):
        with patch("sys.stdout", new_callable=io.StringIO) as stdout:
            status = main(["--backend", "memory", "--log-level", "WARNING", *argv])
        return status, json.loads(stdout.getvalue())

    def test_create_area_succeeds(self):
        status, output = self.run_main("create-area", "Mall", "1 Road", "--cars", "2", "--bikes", "1")
        self.assertEqual(status, 0)
        self.assertTrue(output["success"])
        self.assertEqual([slot["vehicleType"] for slot in output["parkingArea"]["slots"]], ["Car", "Car", "Bike"])

    def test_error_exit_status(self):
        status, output = self.run_main("show-area", "missing")
        self.assertEqual(status, 1)
        self.assertEqual(output["code"], "PARKING_AREA_NOT_FOUND")

    def test_invalid_json(self):
        with patch("sys.stdout", new_callable=io.StringIO) as stdout:
            status = main(["--backend", "memory", "--log-level", "CRITICAL", "run", "{not json"])
        self.assertEqual(status, 2)
        self.assertEqual(stdout.getvalue(), "")


if __name__ == '__main__':
    unittest.main()
