"""
infosheet/blueprints/profile/__init__.py

Blueprint package export.

IMPORTANT:
- Must expose profile_bp for app factory registration.
- Keep import minimal to avoid side effects.
"""

from __future__ import annotations

from .routes import profile_bp  # noqa: F401
