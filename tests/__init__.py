"""
Whistle Counter Tests
=====================

Unit tests for the whistle counter components.

Test Structure:
- test_loudness.py: Loudness estimation from frequency frames
- test_sustain.py: Leaky-bucket sustain detector
- test_session.py: Session state machine driven tick-by-tick
- test_dispatcher.py: Notification dispatch
- test_config.py / test_store.py: Configuration and persisted settings
- test_capture.py / test_sounds.py: sounddevice adapters (backend mocked)
- conftest.py: Fake clock, scheduler, capture and collaborators

To run tests:
    pytest tests/
"""
