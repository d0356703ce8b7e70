"""Tests for the application wiring."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from whistle_counter.app import WhistleCounterApp
from whistle_counter.audio.sounds import NullSoundPlayer, SounddevicePlayer
from whistle_counter.config.store import JsonFileSettingsStore, MemorySettingsStore
from whistle_counter.core.events import SessionState

NO_ENV = Path("does-not-exist.env")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("WHISTLE_TARGET_COUNT", "WHISTLE_MIN_DURATION", "WHISTLE_SENSITIVITY"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def app(capture, dispatcher, sound_player, scheduler):
    return WhistleCounterApp(
        config_path=NO_ENV,
        store=MemorySettingsStore({"target_count": "2"}),
        capture=capture,
        sound_player=sound_player,
        dispatcher=dispatcher,
        scheduler=scheduler,
    )


class TestWhistleCounterApp:
    def test_config_loaded_from_store(self, app):
        assert app.config.target_count == 2
        assert app.snapshot().target_count == 2

    def test_session_shares_config(self, app):
        assert app.session.config is app.config

    def test_start_stop_reset(self, app, capture):
        app.start()
        assert app.snapshot().state is SessionState.LISTENING
        app.stop()
        assert app.snapshot().state is SessionState.READY
        assert not capture.is_open
        app.reset()
        assert app.snapshot().whistle_count == 0

    def test_on_event_receives_session_events(self, app):
        received = []
        app.on_event(received.append)
        app.start()
        assert received

    def test_update_settings_persists(self, capture, dispatcher, sound_player, scheduler):
        store = MemorySettingsStore()
        app = WhistleCounterApp(
            config_path=NO_ENV,
            store=store,
            capture=capture,
            sound_player=sound_player,
            dispatcher=dispatcher,
            scheduler=scheduler,
        )
        app.update_settings(target_count=5, message_url="https://msg.example.com")
        assert app.config.target_count == 5
        assert store.get("target_count") == "5"
        assert store.get("message_url") == "https://msg.example.com"

    def test_invalid_update_changes_nothing(self, app):
        with pytest.raises(ValidationError):
            app.update_settings(target_count=4, sensitivity_percent=200)
        assert app.config.target_count == 2
        assert app.config.sensitivity_percent == 50

    def test_unknown_setting_rejected(self, app):
        with pytest.raises(ValueError):
            app.update_settings(volume=11)

    def test_settings_path_uses_json_store(self, tmp_path, capture):
        path = tmp_path / "settings.json"
        app = WhistleCounterApp(config_path=NO_ENV, settings_path=path, capture=capture, sound_enabled=False)
        app.update_settings(target_count=7)
        assert JsonFileSettingsStore(path).get("target_count") == "7"

    def test_sound_player_selection(self, capture):
        quiet = WhistleCounterApp(config_path=NO_ENV, capture=capture, sound_enabled=False)
        assert isinstance(quiet.sound_player, NullSoundPlayer)
        loud = WhistleCounterApp(config_path=NO_ENV, capture=capture)
        assert isinstance(loud.sound_player, SounddevicePlayer)
