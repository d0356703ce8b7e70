import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from whistle_counter.config.settings import (
    WhistleCounterConfig,
    create_example_env_file,
    load_config,
    save_config,
)
from whistle_counter.config.store import MemorySettingsStore
from whistle_counter.detection.sustain import required_frames

_ENV_KEYS = (
    "WHISTLE_SENSITIVITY",
    "WHISTLE_MIN_DURATION",
    "WHISTLE_TARGET_COUNT",
    "WHISTLE_WEBHOOK_URL",
    "WHISTLE_MESSAGE_URL",
    "WHISTLE_INPUT_DEVICE",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestConfig:
    def test_default_config(self):
        config = WhistleCounterConfig()
        assert config.sensitivity_percent == 50
        assert config.min_duration_seconds == 2.0
        assert config.target_count == 3
        assert config.cooldown_ms == 5000
        assert config.webhook_url == ""
        assert config.message_url == ""

    def test_derived_values(self):
        config = WhistleCounterConfig(sensitivity_percent=80, min_duration_seconds=1.5)
        assert config.threshold_percent == 20
        assert config.required_frames() == 90

    def test_required_frames_uses_detector_formula(self):
        config = WhistleCounterConfig(min_duration_seconds=2.5)
        with patch("whistle_counter.config.settings.frames_for_duration", return_value=7) as frames:
            assert config.required_frames(30) == 7
        frames.assert_called_once_with(2.5, 30)
        assert config.required_frames(30) == required_frames(2.5, 30)

    @pytest.mark.parametrize(
        "field, value",
        [
            ("sensitivity_percent", 0),
            ("sensitivity_percent", 96),
            ("min_duration_seconds", 0.4),
            ("min_duration_seconds", 5.5),
            ("min_duration_seconds", 1.25),
            ("target_count", 21),
            ("target_count", -1),
        ],
    )
    def test_out_of_range_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            WhistleCounterConfig(**{field: value})

    def test_invalid_assignment_leaves_config_unchanged(self):
        config = WhistleCounterConfig()
        with pytest.raises(ValidationError):
            config.target_count = 50
        assert config.target_count == 3

    def test_zero_target_allowed(self):
        assert WhistleCounterConfig(target_count=0).target_count == 0

    @patch.dict(os.environ, {
        "WHISTLE_SENSITIVITY": "70",
        "WHISTLE_MIN_DURATION": "3.5",
        "WHISTLE_TARGET_COUNT": "5",
        "WHISTLE_INPUT_DEVICE": "2",
    })
    def test_load_config_from_env(self):
        config = load_config(Path("does-not-exist.env"))
        assert config.sensitivity_percent == 70
        assert config.min_duration_seconds == 3.5
        assert config.target_count == 5
        assert config.input_device == 2

    @patch.dict(os.environ, {"WHISTLE_TARGET_COUNT": "many"})
    def test_invalid_env_value_raises(self):
        with pytest.raises(ValueError):
            load_config(Path("does-not-exist.env"))

    def test_config_from_temp_file(self):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".env", delete=False) as f:
            f.write("WHISTLE_TARGET_COUNT=7\n")
            f.write("WHISTLE_MESSAGE_URL=https://msg.example.com/send\n")
            temp_path = f.name

        try:
            config = load_config(Path(temp_path))
            assert config.target_count == 7
            assert config.message_url == "https://msg.example.com/send"
        finally:
            os.unlink(temp_path)
            os.environ.pop("WHISTLE_TARGET_COUNT", None)
            os.environ.pop("WHISTLE_MESSAGE_URL", None)


class TestStoredSettings:
    def test_store_overrides_env(self):
        store = MemorySettingsStore({"target_count": "4", "min_duration_seconds": "1.5"})
        with patch.dict(os.environ, {"WHISTLE_TARGET_COUNT": "9"}):
            config = load_config(Path("does-not-exist.env"), store)
        assert config.target_count == 4
        assert config.min_duration_seconds == 1.5

    def test_missing_keys_fall_back_to_defaults(self):
        config = load_config(Path("does-not-exist.env"), MemorySettingsStore())
        assert config.target_count == 3
        assert config.min_duration_seconds == 2.0

    def test_invalid_stored_values_are_ignored(self):
        store = MemorySettingsStore({"target_count": "lots", "min_duration_seconds": "9", "message_url": "https://m"})
        config = load_config(Path("does-not-exist.env"), store)
        assert config.target_count == 3
        assert config.min_duration_seconds == 2.0
        assert config.message_url == "https://m"

    def test_save_config_round_trips_persisted_keys(self):
        store = MemorySettingsStore()
        config = WhistleCounterConfig(target_count=6, min_duration_seconds=3.0, webhook_url="https://w")
        save_config(config, store)

        assert store.get("target_count") == "6"
        assert store.get("min_duration_seconds") == "3.0"
        assert store.get("webhook_url") == "https://w"
        assert store.get("message_url") == ""
        assert store.get("sensitivity_percent") is None

        reloaded = load_config(Path("does-not-exist.env"), store)
        assert reloaded.target_count == 6
        assert reloaded.webhook_url == "https://w"


def test_create_example_env_file(tmp_path):
    path = tmp_path / ".env.example"
    create_example_env_file(path)
    content = path.read_text()
    assert "WHISTLE_SENSITIVITY=50" in content
    assert "WHISTLE_TARGET_COUNT=3" in content
