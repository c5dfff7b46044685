"""Kan workspace API: boards, cards and pages with live updates."""

__version__ = "0.4.0"
