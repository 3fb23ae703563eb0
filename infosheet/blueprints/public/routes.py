"""
Public sheet route: /qr/<code>

Intentionally requires no authentication; whoever scans the QR code sees the
sheet. Unknown or malformed codes are a plain 404 so codes cannot be tested
for existence.
"""

from __future__ import annotations

from datetime import date

from flask import Blueprint, abort, current_app, make_response, render_template

from ...extensions import db
from ...models import ShortCode
from ...shortcodes import find_profile_by_code, is_valid_code

public_bp = Blueprint("public", __name__)


@public_bp.route("/qr/<code>")
def view_sheet(code: str):
    """Read-only emergency sheet for a short code."""
    if not is_valid_code(code):
        abort(404)

    profile = find_profile_by_code(code)
    if profile is None:
        current_app.logger.info("Unknown short code requested")
        abort(404)

    ShortCode.record_view(profile.short_code.id)
    db.session.commit()

    response = make_response(
        render_template("public/sheet.html", profile=profile, today=date.today())
    )
    response.headers["Cache-Control"] = "no-store"
    response.headers["X-Robots-Tag"] = "noindex, nofollow"
    return response
