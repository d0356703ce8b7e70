"""Whistle counter: listens for sustained tones and raises an alarm at a target count."""

__version__ = "0.1.0"
