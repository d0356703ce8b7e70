"""Application wiring: config, settings store, audio, notifications and session."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from .audio.capture import AudioCapture
from .audio.sounds import NullSoundPlayer, SoundPlayer, SounddevicePlayer
from .config.settings import WhistleCounterConfig, load_config, save_config
from .config.store import JsonFileSettingsStore, MemorySettingsStore, SettingsStore
from .core.events import SessionSnapshot
from .core.scheduler import Scheduler
from .core.session import SessionListener, WhistleSession
from .notify.dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


class WhistleCounterApp:
    """
    Owns one whistle session and the collaborators it needs.

    Presentation layers talk to this object only: start/stop/reset, read
    snapshots, listen for events and change settings.
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        settings_path: Optional[Path] = None,
        store: Optional[SettingsStore] = None,
        capture: Optional[AudioCapture] = None,
        sound_player: Optional[SoundPlayer] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        scheduler: Optional[Scheduler] = None,
        sound_enabled: bool = True,
    ):
        if store is None:
            store = JsonFileSettingsStore(settings_path) if settings_path else MemorySettingsStore()
        self._store = store
        self._config = load_config(config_path, store)

        self.capture = capture or AudioCapture(device=self._config.input_device)
        if sound_player is None:
            sound_player = SounddevicePlayer() if sound_enabled else NullSoundPlayer()
        self.sound_player = sound_player
        self.dispatcher = dispatcher or NotificationDispatcher()

        self.session = WhistleSession(
            config=self._config,
            capture=self.capture,
            dispatcher=self.dispatcher,
            sound_player=self.sound_player,
            scheduler=scheduler,
        )

    @property
    def config(self) -> WhistleCounterConfig:
        return self._config

    def start(self) -> None:
        self.session.start()

    def stop(self) -> None:
        self.session.stop()

    def reset(self) -> None:
        self.session.reset()

    def snapshot(self) -> SessionSnapshot:
        return self.session.snapshot()

    def on_event(self, listener: SessionListener) -> None:
        self.session.add_listener(listener)

    def update_settings(self, **changes: Any) -> WhistleCounterConfig:
        """
        Apply user setting changes and persist them.

        All changes are validated before any is applied, so an invalid value
        leaves the running config untouched.  The session picks the new
        values up on its next tick.
        """
        unknown = set(changes) - set(WhistleCounterConfig.model_fields)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

        WhistleCounterConfig.model_validate({**self._config.model_dump(), **changes})
        for name, value in changes.items():
            setattr(self._config, name, value)
        save_config(self._config, self._store)
        logger.info(f"Settings updated: {changes}")
        return self._config
