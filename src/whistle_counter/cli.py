"""Console front end for the whistle counter."""

import argparse
import os
import threading
import time
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .app import WhistleCounterApp
from .audio.capture import CaptureAvailability, CaptureError
from .config.settings import create_example_env_file, setup_logging
from .constants import ALARM_DURATION_MS
from .core.events import (
    CaptureFailed,
    NotificationsSettled,
    SessionEvent,
    StateChanged,
    TargetReached,
    WhistleDetected,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Count pressure-cooker whistles and raise an alarm")
    parser.add_argument("--config", type=str, help="Path to .env config file", default=".env")
    parser.add_argument("--settings", type=str, help="Path to persisted settings file", default="whistle_settings.json")
    parser.add_argument("--create-config", action="store_true", help="Create example config file")
    parser.add_argument("--check", action="store_true", help="Check microphone availability and list input devices")
    parser.add_argument("--target", type=int, help="Whistles needed to raise the alarm (0 = count only)")
    parser.add_argument("--sensitivity", type=int, help="Microphone sensitivity, 1-95")
    parser.add_argument("--min-duration", type=float, help="Seconds a whistle must last (steps of 0.5)")
    parser.add_argument("--webhook-url", type=str, help="Notification URL called with a JSON POST")
    parser.add_argument("--message-url", type=str, help="Notification URL called with a GET")
    parser.add_argument("--no-sound", action="store_true", help="Disable confirmation and alarm sounds")
    return parser


def _settings_from_args(args: argparse.Namespace) -> dict:
    changes = {
        "target_count": args.target,
        "sensitivity_percent": args.sensitivity,
        "min_duration_seconds": args.min_duration,
        "webhook_url": args.webhook_url,
        "message_url": args.message_url,
    }
    return {k: v for k, v in changes.items() if v is not None}


def _describe(event: SessionEvent) -> Optional[str]:
    if isinstance(event, StateChanged):
        return f"[{event.current.value}]"
    if isinstance(event, WhistleDetected):
        return f"Whistle #{event.whistle_count} detected (target {event.target_count})"
    if isinstance(event, TargetReached):
        return f"Target of {event.target_count} whistles reached!"
    if isinstance(event, NotificationsSettled):
        if event.failed:
            return f"{event.message} ({event.failed} failed)"
        return event.message
    if isinstance(event, CaptureFailed):
        return f"Microphone error: {event.message}"
    return None


def run(app: WhistleCounterApp, play_alarm: bool = True, poll_interval_s: float = 0.1) -> int:
    """Listen until the completion signal arrives or the user interrupts."""
    done = threading.Event()

    def on_event(event: SessionEvent) -> None:
        text = _describe(event)
        if text:
            print(text, flush=True)
        if isinstance(event, NotificationsSettled):
            done.set()

    app.on_event(on_event)
    try:
        app.start()
    except CaptureError:
        print("Could not access the microphone. Check that an input device is connected and permitted.")
        return 1

    snapshot = app.snapshot()
    print(
        f"Listening for {snapshot.target_count or 'unlimited'} whistle(s) "
        f"(threshold {snapshot.threshold_percent}%, hold {app.config.min_duration_seconds}s). "
        "Press Ctrl+C to stop."
    )
    try:
        while not done.wait(poll_interval_s):
            pass
        if play_alarm:
            time.sleep(ALARM_DURATION_MS / 1000.0)
    except KeyboardInterrupt:
        print(f"\nStopped. Whistles counted: {app.snapshot().whistle_count}")
    finally:
        app.stop()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.create_config:
        create_example_env_file()
        print("Example configuration file created at .env.example")
        print("Copy it to .env and adjust the values.")
        return 0

    config_path = Path(args.config) if args.config else None
    if config_path is not None and config_path.exists():
        load_dotenv(config_path)
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    try:
        app = WhistleCounterApp(
            config_path=config_path,
            settings_path=Path(args.settings) if args.settings else None,
            sound_enabled=not args.no_sound,
        )

        if args.check:
            availability = app.capture.probe()
            print(f"  microphone: {availability.value}")
            if availability is not CaptureAvailability.UNSUPPORTED:
                for index, name in app.capture.list_input_devices():
                    print(f"  [{index}] {name}")
            return 0 if availability is CaptureAvailability.AVAILABLE else 1

        changes = _settings_from_args(args)
        if changes:
            app.update_settings(**changes)

        return run(app, play_alarm=not args.no_sound)

    except ValueError as e:
        print(f"Configuration error: {e}")
        return 2
    except KeyboardInterrupt:
        print("\nGoodbye!")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
