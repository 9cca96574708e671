# File: tests/helpers.py
"""
Shared builders for the unit and integration tests
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from parkslot.application.dtos import RegisterVehicleRequest
from parkslot.application.slot_service import SlotService
from parkslot.domain.models import AreaChangedEvent, ParkingArea, TypeCapacity
from parkslot.infrastructure.locking import InProcessAreaLockManager
from parkslot.infrastructure.messaging import EventBus, EventHandler
from parkslot.infrastructure.repositories import RepositoryBundle, RepositoryFactory


class FixedClock:
    """Deterministic clock advancing one minute per call"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(minutes=1)
        return current


class RecordingHandler(EventHandler):
    """Collects every event it receives"""

    def __init__(self):
        self.events: List[AreaChangedEvent] = []

    def handle(self, event: AreaChangedEvent) -> None:
        self.events.append(event)

    def kinds(self) -> List[str]:
        return [event.change_kind.value for event in self.events]


def build_service(repositories: Optional[RepositoryBundle] = None, **kwargs: Any):
    """SlotService on in-memory storage; returns (service, repositories, recorder)"""
    repositories = repositories or RepositoryFactory.create_in_memory()
    bus = EventBus()
    recorder = RecordingHandler()
    bus.subscribe(recorder)
    service = SlotService(
        areas=repositories.areas,
        vehicles=repositories.vehicles,
        users=repositories.users,
        locks=kwargs.pop("locks", InProcessAreaLockManager(wait_seconds=5)),
        events=kwargs.pop("events", bus),
        clock=kwargs.pop("clock", FixedClock()),
        **kwargs
    )
    return service, repositories, recorder


def legacy_area(
    total: int = 3,
    car: int = 2,
    bike: int = 1,
    van: int = 0,
    three_wheeler: int = 0,
    name: str = "City Centre"
) -> ParkingArea:
    """Area stored without a slot layout, as created before layouts existed"""
    return ParkingArea(
        name=name,
        address="1 Main Street",
        total_slots=total,
        capacity=TypeCapacity(car=car, bike=bike, van=van, three_wheeler=three_wheeler),
    )


def registration(**overrides: Any) -> RegisterVehicleRequest:
    fields: Dict[str, Any] = {
        "plate": "ABC-123",
        "userEmail": "nimal@example.com",
        "userName": "Nimal Perera",
        "userPhone": "+94 77 123 4567",
        "vehicleType": "Car",
        "parkingAreaId": None,
        "slotNumber": 1,
    }
    fields.update(overrides)
    return RegisterVehicleRequest.model_validate(fields)
