"""Command-line entry point.

Subcommands:
    watch    Run the proximity alert session until interrupted
    report   Submit a sighting from this device
    mine     List this device's reports
    delete   Delete one of this device's reports
    nearby   List sightings near a position
"""

import argparse
import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Any

from petwatch.core.config import Config, validate_config
from petwatch.core.errors import DuplicateSubmissionError, StoreError, ValidationError
from petwatch.core.formatter import format_sighting_summary
from petwatch.core.geo import Coordinate
from petwatch.core.proximity import find_nearby
from petwatch.core.sighting import SightingReport
from petwatch.orchestrator import AlertSession
from petwatch.reports import register_sighting
from petwatch.shell.config_loader import load_config, load_config_from_env
from petwatch.shell.device_identity import get_device_id
from petwatch.shell.firestore_client import FirestoreConfig, SightingStore
from petwatch.shell.storage_client import PhotoStorageClient


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_DUPLICATE = 2


def _get_config(config_path: str | None = None) -> Config:
    """Load configuration from file or environment."""
    config_path = config_path or os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    elif os.environ.get("NOTIFICATION_WEBHOOK_URL"):
        # Simple env-based config
        return load_config_from_env()
    else:
        # Try default config path
        return load_config()


def _make_store(config: Config) -> SightingStore:
    return SightingStore(
        FirestoreConfig(
            project_id=config.firestore_project,
            database=config.firestore_database,
            collection=config.firestore_collection,
        )
    )


def _coordinate(args: argparse.Namespace) -> Coordinate | None:
    if args.lat is None or args.lon is None:
        return None
    return Coordinate(latitude=args.lat, longitude=args.lon)


def cmd_watch(config: Config, args: argparse.Namespace) -> int:
    """Run an alert session until interrupted or terminated."""
    if not config.notification_webhook_url:
        logger.warning("No notification webhook configured; alerts will only be logged")

    session = AlertSession(config)
    stop_requested = threading.Event()

    def request_stop(signum: int, _frame: Any) -> None:
        logger.info("Received signal %d, stopping", signum)
        stop_requested.set()

    previous_handler = signal.signal(signal.SIGTERM, request_stop)
    try:
        session.start()
        while not stop_requested.wait(1.0):
            pass
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping")
    finally:
        session.stop()
        signal.signal(signal.SIGTERM, previous_handler)

    return EXIT_OK


def cmd_report(config: Config, args: argparse.Namespace) -> int:
    """Submit a sighting from this device."""
    try:
        coordinate = _coordinate(args)
    except ValueError as e:
        print(f"Invalid location: {e}", file=sys.stderr)
        return EXIT_ERROR

    image_bytes = None
    if args.photo:
        try:
            image_bytes = Path(args.photo).read_bytes()
        except OSError as e:
            print(f"Could not read photo: {e}", file=sys.stderr)
            return EXIT_ERROR

    photo_client = None
    if config.storage_bucket:
        photo_client = PhotoStorageClient(
            config.storage_bucket,
            project_id=config.firestore_project,
        )

    report = SightingReport(
        name=args.name,
        contact=args.contact,
        description=args.description or "",
        coordinate=coordinate,
        device_id=get_device_id(config.device_id_path),
    )

    store = _make_store(config)
    try:
        sighting_id = register_sighting(store, report, photo_client, image_bytes)
    except DuplicateSubmissionError as e:
        print(f"Duplicate: {e}", file=sys.stderr)
        return EXIT_DUPLICATE
    except ValidationError as e:
        print(f"Incomplete report: {e}", file=sys.stderr)
        return EXIT_ERROR
    except StoreError as e:
        print(f"Could not submit report: {e}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        store.close()

    print(f"Alert sent to the community (id {sighting_id})")
    return EXIT_OK


def cmd_mine(config: Config, args: argparse.Namespace) -> int:
    """List this device's reports, newest first."""
    store = _make_store(config)
    try:
        sightings = store.fetch_by_device(get_device_id(config.device_id_path))
    except StoreError as e:
        print(f"Could not load your reports: {e}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        store.close()

    if not sightings:
        print("You have no reports")
    for sighting in sightings:
        print(format_sighting_summary(sighting))
    return EXIT_OK


def cmd_delete(config: Config, args: argparse.Namespace) -> int:
    """Delete one of this device's reports."""
    store = _make_store(config)
    try:
        mine = store.fetch_by_device(get_device_id(config.device_id_path))
        if args.id not in {s.id for s in mine}:
            print(f"Report {args.id} is not one of your reports", file=sys.stderr)
            return EXIT_ERROR
        store.delete(args.id)
    except StoreError as e:
        print(f"Could not delete report: {e}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        store.close()

    print(f"Report {args.id} deleted")
    return EXIT_OK


def cmd_nearby(config: Config, args: argparse.Namespace) -> int:
    """List sightings within a radius of a position."""
    try:
        position = _coordinate(args)
    except ValueError as e:
        print(f"Invalid location: {e}", file=sys.stderr)
        return EXIT_ERROR

    radius = args.radius if args.radius is not None else config.alert_radius_m

    store = _make_store(config)
    try:
        sightings = store.fetch_all()
    except StoreError as e:
        print(f"Could not load sightings: {e}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        store.close()

    nearby = find_nearby(position, sightings, radius)
    if not nearby:
        print(f"No sightings within {radius:.0f} m")
    for sighting, distance in nearby:
        print(format_sighting_summary(sighting, distance))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="petwatch",
        description="Community lost-pet sightings with nearby alerts",
    )
    parser.add_argument("--config", help="Path to YAML config file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    watch = subparsers.add_parser("watch", help="Alert when near a reported pet")
    watch.set_defaults(func=cmd_watch)

    report = subparsers.add_parser("report", help="Report a lost pet sighting")
    report.add_argument("--name", required=True, help="Pet name")
    report.add_argument("--contact", required=True, help="Contact phone")
    report.add_argument("--description", help="Description")
    report.add_argument("--lat", type=float, help="Latitude")
    report.add_argument("--lon", type=float, help="Longitude")
    report.add_argument("--photo", help="Path to a photo to attach")
    report.set_defaults(func=cmd_report)

    mine = subparsers.add_parser("mine", help="List your reports")
    mine.set_defaults(func=cmd_mine)

    delete = subparsers.add_parser("delete", help="Delete one of your reports")
    delete.add_argument("id", help="Report ID")
    delete.set_defaults(func=cmd_delete)

    nearby = subparsers.add_parser("nearby", help="List sightings near a position")
    nearby.add_argument("--lat", type=float, required=True, help="Latitude")
    nearby.add_argument("--lon", type=float, required=True, help="Longitude")
    nearby.add_argument("--radius", type=float, help="Radius in meters")
    nearby.set_defaults(func=cmd_nearby)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = _get_config(args.config)

    problems = validate_config(config)
    if problems:
        for problem in problems:
            logger.error("Invalid configuration: %s", problem)
        return EXIT_ERROR

    return args.func(config, args)


if __name__ == "__main__":
    sys.exit(main())
