"""Inspect or toggle the database-side notification fan-out trigger."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from tradingroom.db import database
from tradingroom.services.notification_trigger_service import NotificationTriggerService


logger = logging.getLogger("tradingroom.scripts.manage_notification_trigger")

ACTIONS = ("status", "install", "enable", "disable", "remove")


# Access SessionLocal dynamically so fixtures that rebind the sessionmaker are respected.
SessionLocal = lambda: database.SessionLocal()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage the message notification trigger")
    parser.add_argument("action", choices=ACTIONS, help="Operation to perform")
    parser.add_argument(
        "--enabled",
        action="store_true",
        help="With 'install': leave the trigger enabled instead of disabled",
    )
    return parser.parse_args(argv)


def run(action: str, enabled: bool = False) -> int:
    session = SessionLocal()
    try:
        service = NotificationTriggerService(session)
        if action != "status" and not service.is_supported():
            print("The notification trigger requires PostgreSQL.", file=sys.stderr)
            return 1
        try:
            if action == "install":
                service.install(enabled=enabled)
            elif action == "enable":
                service.enable()
            elif action == "disable":
                service.disable()
            elif action == "remove":
                service.remove()
        except RuntimeError as e:
            print(str(e), file=sys.stderr)
            logger.error("Trigger %s failed: %s", action, e)
            return 1
        print(json.dumps(service.status(), indent=2))
        return 0
    finally:
        session.close()


def main(argv: list[str] | None = None) -> int:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    return run(args.action, enabled=args.enabled)


if __name__ == "__main__":  # pragma: no cover - manual execution path
    sys.exit(main())
