"""
infosheet/security.py

Access control helpers.

Key rules:
- UI is never trusted; all permission checks are server-side.
- Protected routes use flask_login.login_required.
- A user only ever reaches their own Profile: profile routes resolve it through
  current_user, never through an id taken from the request.
- The public sheet (/qr/<code>) is the only route that shows profile data
  without a session.

IMPORTANT:
- Decorators must preserve wrapped function metadata to avoid Flask endpoint collisions.
  We use functools.wraps everywhere.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Optional, Tuple
from urllib.parse import urlsplit

from flask import redirect, render_template, url_for
from flask_login import current_user


def forbidden() -> Tuple[str, int]:
    """Render a consistent 403 page."""
    return render_template("errors/403.html"), 403


def owned_profile():
    """Return the current user's Profile, or None when they have not created one."""
    if not current_user.is_authenticated:
        return None
    return current_user.profile


def profile_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator: the current user must already own a profile.

    The profile is passed to the view as the ``profile`` keyword argument.
    Place it below @login_required.
    """
    @wraps(view_func)
    def wrapper(*args: Any, **kwargs: Any):
        profile = owned_profile()
        if profile is None:
            return redirect(url_for("profile.create_profile"))
        return view_func(*args, profile=profile, **kwargs)

    return wrapper


def anonymous_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator: send already-authenticated users to their dashboard (login/register pages)."""
    @wraps(view_func)
    def wrapper(*args: Any, **kwargs: Any):
        if current_user.is_authenticated:
            return redirect(url_for("profile.dashboard"))
        return view_func(*args, **kwargs)

    return wrapper


def safe_next_url(target: Optional[str]) -> Optional[str]:
    """
    Accept only relative, same-site redirect targets.

    Rejects absolute URLs, scheme-relative URLs (//evil.example) and backslash tricks.
    """
    if not target:
        return None
    target = target.strip()
    if not target.startswith("/") or target.startswith("//") or "\\" in target:
        return None
    parts = urlsplit(target)
    if parts.scheme or parts.netloc:
        return None
    return target
