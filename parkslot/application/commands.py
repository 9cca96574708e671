# File: parkslot/application/commands.py
"""
Command Pattern Implementation for the slot management service

Each operation of SlotService is wrapped in a command object built from a
plain JSON-style payload, so any transport (HTTP handler, message consumer,
CLI) can drive the core the same way:

    handler.handle({"command": "release_slot", "vehicleId": "..."})

The handler always answers with a dict:
    {"success": True, ...result fields}
    {"success": False, "error": ..., "code": ..., "status": ...}

Command Types:
1. Driver commands - availability, registration, release, payment
2. Admin commands  - area creation, layout, counts, capacity, visibility
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type
import logging
import uuid

from pydantic import BaseModel, ValidationError

from ..domain.errors import ErrorCode, InvalidInputError, ParkingError
from .dtos import (
    AreaCapacityRequest, BaseDTO, CreateAreaRequest, RegisterVehicleRequest,
    ReleaseSlotRequest
)
from .slot_service import SlotService


# ============================================================================
# COMMAND BASE CLASS
# ============================================================================

class Command(ABC):
    """
    Abstract base class for all commands
    A command carries the validated arguments of one service call.
    """

    name: str = ""

    def __init__(self, command_id: Optional[str] = None):
        self.command_id = command_id or str(uuid.uuid4())

    @classmethod
    @abstractmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'Command':
        """
        Build the command from a request payload
        Raises: pydantic.ValidationError or ParkingError for malformed payloads
        """
        pass

    @abstractmethod
    def execute(self, service: SlotService) -> Dict[str, Any]:
        """Run the command and return the JSON-ready result fields"""
        pass

    def get_description(self) -> str:
        return f"{self.name} ({self.command_id})"

    @staticmethod
    def _require(payload: Dict[str, Any], key: str) -> Any:
        value = payload.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise InvalidInputError(ErrorCode.MISSING_FIELDS, "Missing required fields", {"fields": [key]})
        return value


class _RequestCommand(Command):
    """Command whose arguments are one request DTO"""

    request_class: Type[BaseModel] = BaseDTO

    def __init__(self, request: BaseModel, command_id: Optional[str] = None):
        super().__init__(command_id)
        self.request = request

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'Command':
        return cls(cls.request_class.model_validate(payload))


class _AreaCommand(Command):
    """Command addressed to one parking area"""

    def __init__(self, area_id: str, command_id: Optional[str] = None):
        super().__init__(command_id)
        self.area_id = area_id

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'Command':
        return cls(str(cls._require(payload, "parkingAreaId")))


# ============================================================================
# DRIVER COMMANDS
# ============================================================================

class ListAvailableCommand(_AreaCommand):
    name = "list_available"

    def __init__(self, area_id: str, vehicle_type: Optional[str] = None, command_id: Optional[str] = None):
        super().__init__(area_id, command_id)
        self.vehicle_type = vehicle_type

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'Command':
        return cls(str(cls._require(payload, "parkingAreaId")), payload.get("vehicleType"))

    def execute(self, service: SlotService) -> Dict[str, Any]:
        return service.list_available(self.area_id, self.vehicle_type).to_dict()


class RegisterAndAssignCommand(_RequestCommand):
    name = "register_and_assign"
    request_class = RegisterVehicleRequest

    def execute(self, service: SlotService) -> Dict[str, Any]:
        return service.register_and_assign(self.request).to_dict()


class RegisterAndAutoAssignCommand(_RequestCommand):
    name = "register_and_auto_assign"
    request_class = RegisterVehicleRequest

    def execute(self, service: SlotService) -> Dict[str, Any]:
        return service.register_and_auto_assign(self.request).to_dict()


class ReleaseSlotCommand(_RequestCommand):
    name = "release_slot"
    request_class = ReleaseSlotRequest

    def execute(self, service: SlotService) -> Dict[str, Any]:
        return service.release_slot(self.request.vehicle_id, self.request.exit_time).to_dict()


class MarkPaidCommand(Command):
    name = "mark_paid"

    def __init__(self, vehicle_id: str, command_id: Optional[str] = None):
        super().__init__(command_id)
        self.vehicle_id = vehicle_id

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'Command':
        return cls(str(cls._require(payload, "vehicleId")))

    def execute(self, service: SlotService) -> Dict[str, Any]:
        return service.mark_paid(self.vehicle_id).to_dict()


class ListCurrentVehiclesCommand(Command):
    name = "list_current_vehicles"

    def __init__(self, area_id: Optional[str] = None, command_id: Optional[str] = None):
        super().__init__(command_id)
        self.area_id = area_id

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'Command':
        return cls(payload.get("parkingAreaId"))

    def execute(self, service: SlotService) -> Dict[str, Any]:
        vehicles = service.list_current_vehicles(self.area_id)
        return {"count": len(vehicles), "vehicles": [vehicle.to_dict() for vehicle in vehicles]}


# ============================================================================
# ADMIN COMMANDS
# ============================================================================

class CreateAreaCommand(_RequestCommand):
    name = "create_area"
    request_class = CreateAreaRequest

    def execute(self, service: SlotService) -> Dict[str, Any]:
        return service.create_area(self.request).to_dict()


class InitializeSlotsCommand(_AreaCommand):
    name = "initialize_slots"

    def execute(self, service: SlotService) -> Dict[str, Any]:
        return service.initialize_slots(self.area_id).to_dict()


class RecalculateCountsCommand(_AreaCommand):
    name = "recalculate_counts"

    def execute(self, service: SlotService) -> Dict[str, Any]:
        return service.recalculate_counts(self.area_id).to_dict()


class UpdateCapacityCommand(_AreaCommand):
    name = "update_capacity"

    def __init__(self, area_id: str, request: AreaCapacityRequest, command_id: Optional[str] = None):
        super().__init__(area_id, command_id)
        self.request = request

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'Command':
        area_id = str(cls._require(payload, "parkingAreaId"))
        return cls(area_id, AreaCapacityRequest.model_validate(payload))

    def execute(self, service: SlotService) -> Dict[str, Any]:
        return service.update_capacity(self.area_id, self.request).to_dict()


class SetAreaActiveCommand(_AreaCommand):
    name = "set_area_active"

    def __init__(self, area_id: str, active: bool, command_id: Optional[str] = None):
        super().__init__(area_id, command_id)
        self.active = active

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'Command':
        active = cls._require(payload, "active")
        if not isinstance(active, bool):
            raise InvalidInputError(ErrorCode.INVALID_REQUEST, "active must be true or false", {"active": active})
        return cls(str(cls._require(payload, "parkingAreaId")), active)

    def execute(self, service: SlotService) -> Dict[str, Any]:
        return service.set_area_active(self.area_id, self.active).to_dict()


class GetAreaCommand(_AreaCommand):
    name = "get_area"

    def execute(self, service: SlotService) -> Dict[str, Any]:
        return {"parkingArea": service.get_area(self.area_id).to_dict()}


class ListAreasCommand(Command):
    name = "list_areas"

    def __init__(self, active_only: bool = True, command_id: Optional[str] = None):
        super().__init__(command_id)
        self.active_only = active_only

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'Command':
        return cls(bool(payload.get("activeOnly", True)))

    def execute(self, service: SlotService) -> Dict[str, Any]:
        areas = service.list_areas(self.active_only)
        return {"count": len(areas), "parkingAreas": [area.to_dict() for area in areas]}


# ============================================================================
# COMMAND FACTORY AND HANDLER
# ============================================================================

class CommandFactory:
    """Factory for creating commands from dictionary data"""

    command_classes: Dict[str, Type[Command]] = {
        command_class.name: command_class
        for command_class in (
            ListAvailableCommand,
            RegisterAndAssignCommand,
            RegisterAndAutoAssignCommand,
            ReleaseSlotCommand,
            MarkPaidCommand,
            ListCurrentVehiclesCommand,
            CreateAreaCommand,
            InitializeSlotsCommand,
            RecalculateCountsCommand,
            UpdateCapacityCommand,
            SetAreaActiveCommand,
            GetAreaCommand,
            ListAreasCommand,
        )
    }

    @classmethod
    def create_command(cls, command_type: str, payload: Dict[str, Any]) -> Command:
        """
        Create a command instance from type and payload
        Raises: InvalidInputError for unknown command types
        """
        command_class = cls.command_classes.get(command_type)
        if command_class is None:
            raise InvalidInputError(
                ErrorCode.UNKNOWN_COMMAND,
                f"Unknown command: {command_type}",
                {"command": command_type, "available": sorted(cls.command_classes)},
            )
        return command_class.from_payload(payload)


class ParkingCommandHandler:
    """
    Transport-neutral entry point: JSON-style dict in, dict out

    ParkingError becomes its error payload; malformed payloads become
    INVALID_REQUEST; anything else is logged and reported as INTERNAL_ERROR.
    """

    def __init__(self, service: SlotService):
        self.service = service
        self.logger = logging.getLogger(self.__class__.__name__)

    def handle(self, request: Dict[str, Any]) -> Dict[str, Any]:
        command_type = request.get("command") if isinstance(request, dict) else None
        try:
            if not command_type:
                raise InvalidInputError(ErrorCode.INVALID_REQUEST, "Request has no command")
            command = CommandFactory.create_command(str(command_type), request)
            self.logger.debug(f"Processing command: {command.get_description()}")
            result = command.execute(self.service)
        except ParkingError as e:
            self.logger.info(f"Command {command_type} rejected: {e.code.value} {e.message}")
            return e.to_dict()
        except ValidationError as e:
            error = InvalidInputError(
                ErrorCode.INVALID_REQUEST,
                "Malformed request",
                {"errors": e.errors(include_url=False, include_context=False, include_input=False)},
            )
            self.logger.info(f"Command {command_type} rejected: {error.message}")
            return error.to_dict()
        except Exception as e:
            self.logger.error(f"Error processing command {command_type}: {e}", exc_info=True)
            return ParkingError(ErrorCode.INTERNAL_ERROR, "Internal server error").to_dict()

        return {"success": True, **result}
