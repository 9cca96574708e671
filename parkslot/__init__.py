"""
parkslot - parking area slot allocation and occupancy reconciliation

Layers:
- domain:         slot layout, occupancy reconciliation, validation, errors
- application:    SlotService use cases, DTOs, command handler
- infrastructure: repositories, per-area locks, change notifications, wiring
"""

__version__ = "1.0.0"
