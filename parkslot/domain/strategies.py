# File: parkslot/domain/strategies.py
"""
Slot selection strategies

Used when a vehicle is registered without a requested slot number. Each
strategy picks one free slot compatible with the vehicle type, or None when
the area has no suitable slot. Strategies only choose; the allocator still
performs every availability and compatibility check itself.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Type
import logging

from .models import ParkingArea, Slot, VehicleType


class SlotSelectionStrategy(ABC):
    """
    Abstract base class for slot selection
    Defines the interface for automatic slot choice
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def select_slot(self, area: ParkingArea, vehicle_type: VehicleType) -> Optional[Slot]:
        """
        Pick a free slot for the vehicle type
        Returns: Slot if one is suitable, None otherwise
        """
        pass

    def get_strategy_name(self) -> str:
        return self.__class__.__name__.replace("Strategy", "")

    def __str__(self) -> str:
        return f"{self.get_strategy_name()} Strategy"


class NearestEntryStrategy(SlotSelectionStrategy):
    """
    Lowest-numbered free slot, slot 1 being closest to the entry
    Slots typed for the vehicle win over untyped ones.
    """

    def select_slot(self, area: ParkingArea, vehicle_type: VehicleType) -> Optional[Slot]:
        untyped: Optional[Slot] = None
        for slot in area.free_slots():
            if slot.vehicle_type is None:
                untyped = untyped or slot
            elif slot.accepts(vehicle_type):
                self.logger.debug(f"Selected slot {slot.slot_number} for {vehicle_type}")
                return slot
        if untyped is not None:
            self.logger.debug(f"Selected untyped slot {untyped.slot_number} for {vehicle_type}")
        return untyped


class TypedOnlyStrategy(SlotSelectionStrategy):
    """Only slots explicitly typed for the vehicle, lowest number first"""

    def select_slot(self, area: ParkingArea, vehicle_type: VehicleType) -> Optional[Slot]:
        for slot in area.free_slots():
            if slot.vehicle_type is not None and slot.accepts(vehicle_type):
                return slot
        return None


SLOT_SELECTION_STRATEGIES: Dict[str, Type[SlotSelectionStrategy]] = {
    "nearest_entry": NearestEntryStrategy,
    "typed_only": TypedOnlyStrategy,
}


def create_slot_selection_strategy(name: str) -> SlotSelectionStrategy:
    """
    Create a strategy by its configuration name
    Raises: ValueError for unknown names
    """
    try:
        strategy_class = SLOT_SELECTION_STRATEGIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown slot selection strategy {name!r}, "
            f"expected one of {sorted(SLOT_SELECTION_STRATEGIES)}"
        ) from None
    return strategy_class()
