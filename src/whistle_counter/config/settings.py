import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator
from dotenv import load_dotenv
import logging

from ..constants import (
    COOLDOWN_MS,
    DEFAULT_MIN_DURATION_SECONDS,
    DEFAULT_SENSITIVITY_PERCENT,
    DEFAULT_TARGET_COUNT,
    TICK_RATE_HZ,
)
from ..detection.sustain import required_frames as frames_for_duration
from .store import SettingsStore

logger = logging.getLogger(__name__)

# Keys persisted in the settings store, mapped to config fields.
PERSISTED_KEYS = {
    "webhook_url": "webhook_url",
    "message_url": "message_url",
    "target_count": "target_count",
    "min_duration_seconds": "min_duration_seconds",
}


class WhistleCounterConfig(BaseModel):
    sensitivity_percent: int = Field(default=DEFAULT_SENSITIVITY_PERCENT, ge=1, le=95, description="Microphone sensitivity; the trigger threshold is 100 minus this value")
    min_duration_seconds: float = Field(default=DEFAULT_MIN_DURATION_SECONDS, ge=0.5, le=5.0, description="How long a tone must be sustained to count as a whistle")
    target_count: int = Field(default=DEFAULT_TARGET_COUNT, ge=0, le=20, description="Whistles needed to raise the alarm (0 counts without ever triggering)")
    webhook_url: str = Field(default="", description="Notification URL called with a JSON POST when the target is reached")
    message_url: str = Field(default="", description="Notification URL called with a GET when the target is reached")
    input_device: Optional[int] = Field(default=None, description="sounddevice input device index (default device when unset)")
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = ConfigDict(validate_assignment=True)

    @field_validator("min_duration_seconds")
    @classmethod
    def _half_second_steps(cls, value: float) -> float:
        if abs(value * 2 - round(value * 2)) > 1e-9:
            raise ValueError("min_duration_seconds must be a multiple of 0.5")
        return value

    @field_validator("webhook_url", "message_url")
    @classmethod
    def _strip_url(cls, value: str) -> str:
        return value.strip()

    @property
    def threshold_percent(self) -> int:
        return 100 - self.sensitivity_percent

    @property
    def cooldown_ms(self) -> int:
        return COOLDOWN_MS

    def required_frames(self, tick_rate_hz: float = TICK_RATE_HZ) -> int:
        return frames_for_duration(self.min_duration_seconds, tick_rate_hz)


def _apply_stored_settings(config: WhistleCounterConfig, store: SettingsStore) -> None:
    for key, field_name in PERSISTED_KEYS.items():
        raw = store.get(key)
        if raw is None or raw == "":
            continue
        try:
            setattr(config, field_name, raw)
        except ValueError as e:
            logger.warning(f"Ignoring stored setting {key}={raw!r}: {e}")


def load_config(config_path: Optional[Path] = None, store: Optional[SettingsStore] = None) -> WhistleCounterConfig:
    if config_path is None:
        config_path = Path(".env")

    if config_path.exists():
        load_dotenv(config_path)
        logger.info(f"Loaded environment variables from {config_path}")
    else:
        logger.debug(f"Config file {config_path} not found, using environment variables only")

    try:
        input_device = os.getenv("WHISTLE_INPUT_DEVICE", "")
        config = WhistleCounterConfig(
            sensitivity_percent=int(os.getenv("WHISTLE_SENSITIVITY", str(DEFAULT_SENSITIVITY_PERCENT))),
            min_duration_seconds=float(os.getenv("WHISTLE_MIN_DURATION", str(DEFAULT_MIN_DURATION_SECONDS))),
            target_count=int(os.getenv("WHISTLE_TARGET_COUNT", str(DEFAULT_TARGET_COUNT))),
            webhook_url=os.getenv("WHISTLE_WEBHOOK_URL", ""),
            message_url=os.getenv("WHISTLE_MESSAGE_URL", ""),
            input_device=int(input_device) if input_device.strip() else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

    if store is not None:
        _apply_stored_settings(config, store)

    return config


def save_config(config: WhistleCounterConfig, store: SettingsStore) -> None:
    for key, field_name in PERSISTED_KEYS.items():
        store.set(key, str(getattr(config, field_name)))


def create_example_env_file(path: Path = Path(".env.example")):
    example_content = """# Microphone sensitivity (1-95). Higher values trigger on quieter sounds.
WHISTLE_SENSITIVITY=50

# Seconds a tone must be held to count as a whistle (0.5-5.0, steps of 0.5)
WHISTLE_MIN_DURATION=2.0

# Whistles needed before the alarm goes off (1-20, 0 = count only)
WHISTLE_TARGET_COUNT=3

# Notification URLs (leave empty to disable)
# Webhook receiving a JSON POST, e.g. https://maker.ifttt.com/trigger/...
WHISTLE_WEBHOOK_URL=
# URL receiving a plain GET, e.g. https://api.callmebot.com/whatsapp.php?...
WHISTLE_MESSAGE_URL=

# sounddevice input device index (empty = system default)
WHISTLE_INPUT_DEVICE=

# Logging level
LOG_LEVEL=INFO
"""

    with open(path, "w") as f:
        f.write(example_content)

    logger.info(f"Created example environment file at {path}")


def setup_logging(log_level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
