"""Posture Nudge: webcam posture analysis engine and its command API."""

__version__ = "0.3.0"
