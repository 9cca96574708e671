#!/usr/bin/env python3
"""
Command Layer Unit Tests
Covers the command factory and the dict-in/dict-out command handler.
"""

import unittest
from unittest.mock import Mock

from parkslot.application.commands import (
    CommandFactory, ListAreasCommand, MarkPaidCommand, ParkingCommandHandler,
    RegisterAndAssignCommand, SetAreaActiveCommand, UpdateCapacityCommand
)
from parkslot.domain.errors import ErrorCode, InvalidInputError

from tests.helpers import build_service, legacy_area


class TestCommandFactory(unittest.TestCase):

    def test_creates_registered_commands(self):
        command = CommandFactory.create_command(
            "register_and_assign", {"plate": "ABC-123", "parkingAreaId": "a-1", "slotNumber": 2}
        )
        self.assertIsInstance(command, RegisterAndAssignCommand)
        self.assertEqual(command.request.parking_area_id, "a-1")
        self.assertEqual(command.request.slot_number, 2)

        command = CommandFactory.create_command("mark_paid", {"vehicleId": "v-1"})
        self.assertIsInstance(command, MarkPaidCommand)
        self.assertIn("mark_paid", command.get_description())

    def test_capacity_command_reads_counts(self):
        command = CommandFactory.create_command(
            "update_capacity", {"parkingAreaId": "a-1", "carSlots": 4, "bikeSlots": 2}
        )
        self.assertIsInstance(command, UpdateCapacityCommand)
        self.assertEqual((command.request.car_slots, command.request.bike_slots), (4, 2))
        self.assertTrue(command.request.has_type_counts())

    def test_list_areas_defaults_to_active_only(self):
        command = CommandFactory.create_command("list_areas", {})
        self.assertIsInstance(command, ListAreasCommand)
        self.assertTrue(command.active_only)

    def test_unknown_command(self):
        with self.assertRaises(InvalidInputError) as ctx:
            CommandFactory.create_command("teleport", {})
        self.assertEqual(ctx.exception.code, ErrorCode.UNKNOWN_COMMAND)
        self.assertIn("release_slot", ctx.exception.details["available"])

    def test_missing_area_id(self):
        with self.assertRaises(InvalidInputError) as ctx:
            CommandFactory.create_command("initialize_slots", {"parkingAreaId": "  "})
        self.assertEqual(ctx.exception.code, ErrorCode.MISSING_FIELDS)
        self.assertEqual(ctx.exception.details, {"fields": ["parkingAreaId"]})

    def test_active_flag_must_be_boolean(self):
        with self.assertRaises(InvalidInputError) as ctx:
            SetAreaActiveCommand.from_payload({"parkingAreaId": "a-1", "active": "yes"})
        self.assertEqual(ctx.exception.code, ErrorCode.INVALID_REQUEST)


class TestParkingCommandHandler(unittest.TestCase):

    def setUp(self):
        self.service, self.repos, self.recorder = build_service()
        self.area = legacy_area()
        self.repos.areas.add(self.area)
        self.handler = ParkingCommandHandler(self.service)

    def register(self, **overrides):
        payload = {
            "command": "register_and_assign",
            "plate": "ABC-123",
            "userEmail": "nimal@example.com",
            "userName": "Nimal Perera",
            "vehicleType": "Car",
            "parkingAreaId": self.area.id,
            "slotNumber": 1,
        }
        payload.update(overrides)
        return self.handler.handle(payload)

    def test_register_and_release_flow(self):
        response = self.register()
        self.assertTrue(response["success"])
        self.assertEqual(response["message"], "User and vehicle registered successfully")
        self.assertEqual(response["vehicle"]["slotNumber"], 1)
        self.assertEqual(response["vehicle"]["status"], "Parked")
        self.assertEqual(response["parkingArea"]["availableSlots"], 2)

        vehicle_id = response["vehicle"]["id"]
        paid = self.handler.handle({"command": "mark_paid", "vehicleId": vehicle_id})
        self.assertTrue(paid["success"])
        self.assertEqual(paid["vehicle"]["paymentStatus"], "Paid")

        released = self.handler.handle({"command": "release_slot", "vehicleId": vehicle_id})
        self.assertTrue(released["success"])
        self.assertEqual(released["vehicle"]["status"], "Exited")
        self.assertEqual(released["parkingArea"]["occupiedSlots"], 0)

    def test_list_available_response(self):
        self.register()
        response = self.handler.handle(
            {"command": "list_available", "parkingAreaId": self.area.id, "vehicleType": "Bike"}
        )
        self.assertTrue(response["success"])
        self.assertEqual([slot["slotNumber"] for slot in response["availableSlots"]], [3])
        self.assertEqual(response["parkingArea"]["id"], self.area.id)

    def test_service_error_becomes_error_payload(self):
        self.register()
        response = self.register(plate="XYZ-999")
        self.assertEqual(response, {
            "success": False,
            "error": response["error"],
            "code": "SLOT_OCCUPIED",
            "status": 409,
            "details": response["details"],
        })

    def test_not_found_status(self):
        response = self.handler.handle({"command": "get_area", "parkingAreaId": "missing"})
        self.assertFalse(response["success"])
        self.assertEqual(response["code"], "PARKING_AREA_NOT_FOUND")
        self.assertEqual(response["status"], 404)

    def test_missing_command(self):
        response = self.handler.handle({"plate": "ABC-123"})
        self.assertEqual(response["code"], "INVALID_REQUEST")
        self.assertEqual(response["status"], 400)

    def test_unknown_command(self):
        response = self.handler.handle({"command": "teleport"})
        self.assertEqual(response["code"], "UNKNOWN_COMMAND")

    def test_malformed_payload(self):
        response = self.handler.handle({"command": "release_slot"})
        self.assertFalse(response["success"])
        self.assertEqual(response["code"], "INVALID_REQUEST")
        self.assertTrue(response["details"]["errors"])

        response = self.handler.handle({"command": "create_area", "name": "N", "address": "A", "latitude": 120})
        self.assertEqual(response["code"], "INVALID_REQUEST")

    def test_unexpected_error_is_internal(self):
        service = Mock()
        service.get_area.side_effect = RuntimeError("disk on fire")
        handler = ParkingCommandHandler(service)
        with self.assertLogs("ParkingCommandHandler", level="ERROR"):
            response = handler.handle({"command": "get_area", "parkingAreaId": "a-1"})
        self.assertEqual(response, {
            "success": False,
            "error": "Internal server error",
            "code": "INTERNAL_ERROR",
            "status": 500,
        })

    def test_admin_commands(self):
        created = self.handler.handle({
            "command": "create_area", "name": "Harbour", "address": "Pier 4",
            "carSlots": 2, "vanSlots": 1,
        })
        self.assertTrue(created["success"])
        area_id = created["parkingArea"]["id"]
        self.assertEqual(created["parkingArea"]["totalSlots"], 3)
        self.assertEqual(created["parkingArea"]["vanSlots"], 1)

        resized = self.handler.handle({"command": "update_capacity", "parkingAreaId": area_id, "carSlots": 4, "vanSlots": 1})
        self.assertTrue(resized["success"])
        self.assertEqual(resized["parkingArea"]["totalSlots"], 5)
        self.assertEqual(len(resized["parkingArea"]["slots"]), 5)

        hidden = self.handler.handle({"command": "set_area_active", "parkingAreaId": area_id, "active": False})
        self.assertFalse(hidden["parkingArea"]["active"])

        listed = self.handler.handle({"command": "list_areas"})
        self.assertEqual([area["name"] for area in listed["parkingAreas"]], ["City Centre"])
        listed = self.handler.handle({"command": "list_areas", "activeOnly": False})
        self.assertEqual(listed["count"], 2)

    def test_list_current_vehicles(self):
        self.register()
        response = self.handler.handle({"command": "list_current_vehicles", "parkingAreaId": self.area.id})
        self.assertEqual(response["count"], 1)
        self.assertEqual(response["vehicles"][0]["plate"], "ABC-123")


if __name__ == '__main__':
    unittest.main()
