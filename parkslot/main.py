# File: parkslot/main.py
"""
Command line entry point for the parking slot management core

Every sub-command is turned into a command payload and run through
ParkingCommandHandler, so the CLI answers exactly like any other transport.
Results are printed as JSON; the exit status is 0 on success, 1 otherwise.

Storage, locking and events are configured from the environment (see
parkslot.config); the in-memory backend only lives for one invocation.
"""

from typing import Any, Dict, List, Optional
import argparse
import dataclasses
import json
import logging
import os
import sys

from .config import BACKENDS, Settings
from .infrastructure.factories import ServiceFactory


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Setup application logging configuration"""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )
    return logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="parkslot", description="Parking slot allocation and occupancy tools")
    parser.add_argument("--backend", choices=BACKENDS, help="Override PARKSLOT_BACKEND")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    commands = parser.add_subparsers(dest="cli_command", required=True)

    create = commands.add_parser("create-area", help="Create a parking area and its slot layout")
    create.add_argument("name")
    create.add_argument("address")
    create.add_argument("--total", type=int, dest="totalSlots")
    create.add_argument("--cars", type=int, default=0, dest="carSlots")
    create.add_argument("--bikes", type=int, default=0, dest="bikeSlots")
    create.add_argument("--vans", type=int, default=0, dest="vanSlots")
    create.add_argument("--three-wheelers", type=int, default=0, dest="threeWheelerSlots")
    create.add_argument("--latitude", type=float)
    create.add_argument("--longitude", type=float)
    create.add_argument("--created-by", dest="createdBy")

    for name, help_text in (
        ("init-slots", "Generate the slot layout of an area if missing"),
        ("recalculate", "Recalculate counters and slot links from active vehicles"),
        ("show-area", "Show an area with its full layout"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("parkingAreaId")

    available = commands.add_parser("available", help="List free slots of an area")
    available.add_argument("parkingAreaId")
    available.add_argument("--type", dest="vehicleType")

    for name, help_text in (
        ("register", "Register a vehicle into a specific slot"),
        ("auto-assign", "Register a vehicle into the best free slot"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("parkingAreaId")
        sub.add_argument("plate")
        sub.add_argument("--slot", dest="slotNumber")
        sub.add_argument("--type", dest="vehicleType")
        sub.add_argument("--name", dest="userName", required=True)
        sub.add_argument("--email", dest="userEmail", required=True)
        sub.add_argument("--phone", dest="userPhone")

    release = commands.add_parser("release", help="Exit a vehicle and free its slot")
    release.add_argument("vehicleId")

    pay = commands.add_parser("pay", help="Record payment for a parked vehicle")
    pay.add_argument("vehicleId")

    capacity = commands.add_parser("capacity", help="Change the capacity of an area")
    capacity.add_argument("parkingAreaId")
    capacity.add_argument("--total", type=int, dest="totalSlots")
    capacity.add_argument("--cars", type=int, dest="carSlots")
    capacity.add_argument("--bikes", type=int, dest="bikeSlots")
    capacity.add_argument("--vans", type=int, dest="vanSlots")
    capacity.add_argument("--three-wheelers", type=int, dest="threeWheelerSlots")

    for name in ("activate", "deactivate"):
        sub = commands.add_parser(name, help=f"{name.capitalize()} a parking area")
        sub.add_argument("parkingAreaId")

    areas = commands.add_parser("areas", help="List parking areas")
    areas.add_argument("--all", action="store_true", help="Include inactive areas")

    vehicles = commands.add_parser("vehicles", help="List vehicles currently parked")
    vehicles.add_argument("--area", dest="parkingAreaId")

    raw = commands.add_parser("run", help="Run a raw JSON command payload")
    raw.add_argument("payload", help="JSON object with a 'command' key, or - for stdin")

    return parser


_COMMAND_NAMES = {
    "create-area": "create_area",
    "init-slots": "initialize_slots",
    "recalculate": "recalculate_counts",
    "show-area": "get_area",
    "available": "list_available",
    "register": "register_and_assign",
    "auto-assign": "register_and_auto_assign",
    "release": "release_slot",
    "pay": "mark_paid",
    "capacity": "update_capacity",
    "activate": "set_area_active",
    "deactivate": "set_area_active",
    "areas": "list_areas",
    "vehicles": "list_current_vehicles",
}


def build_payload(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate parsed CLI arguments into a command payload"""
    if args.cli_command == "run":
        text = sys.stdin.read() if args.payload == "-" else args.payload
        return json.loads(text)

    options = {
        key: value for key, value in vars(args).items()
        if key not in ("cli_command", "backend", "log_level", "all") and value is not None
    }
    payload: Dict[str, Any] = {"command": _COMMAND_NAMES[args.cli_command], **options}
    if args.cli_command in ("activate", "deactivate"):
        payload["active"] = args.cli_command == "activate"
    if args.cli_command == "areas":
        payload["activeOnly"] = not args.all
    return payload


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    if args.backend:
        settings = dataclasses.replace(settings, backend=args.backend)
    logger = setup_logging(args.log_level or settings.log_level, settings.log_file)

    try:
        payload = build_payload(args)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON payload: {e}")
        return 2

    handler = ServiceFactory(settings).create_command_handler()
    result = handler.handle(payload)
    print(json.dumps(result, indent=2, default=str))
    return 0 if result.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
