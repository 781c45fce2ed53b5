"""Desktop launcher running the tracker viewer API locally."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

from trackerlink.sync.config import SyncSettings, load_settings
from trackerlink.sync.room_store import format_room_fragment, parse_room_fragment

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Tracker Link viewer")
    parser.add_argument("--room", default="", help="Room ID or #v1:<roomId> link fragment")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--relay-url", default=None)
    parser.add_argument("--strategy", choices=["backoff", "single"], default=None)
    parser.add_argument("--state-file", default=None)
    parser.add_argument("--log-level", default=None)
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def settings_from_args(args: argparse.Namespace, settings: SyncSettings) -> SyncSettings:
    overrides = {
        "host": args.host,
        "port": args.port,
        "relay_url": args.relay_url,
        "reconnect_strategy": args.strategy,
        "state_file": args.state_file,
        "log_level": args.log_level,
    }
    return replace(settings, **{key: value for key, value in overrides.items() if value is not None})


def startup_fragment(room: str) -> str | None:
    """Accept either a bare room id or a ``#v1:`` fragment on the command line."""
    room = room.strip()
    if not room:
        return None
    if parse_room_fragment(room):
        return room if room.startswith("#") else f"#{room}"
    return format_room_fragment(room)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = settings_from_args(args, load_settings())
    configure_logging(settings.log_level)

    import uvicorn

    from trackerlink.sync.api import create_app

    try:
        app = create_app(settings=settings, startup_fragment=startup_fragment(args.room))
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    logging.getLogger(__name__).info("Serving tracker viewer on http://%s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
