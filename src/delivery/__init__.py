"""
Fluency: terminal front end for the adaptive drill scheduler.

Components:
- cli: typer application (thresholds, stats, baseline, reset, simulate)
"""

from .cli import app, main

__all__ = [
    "app",
    "main",
]
