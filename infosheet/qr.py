"""
QR encoding of the public sheet URL.

The SVG path factory of `qrcode` is used so no imaging library is required.
"""

from __future__ import annotations

from io import BytesIO

import qrcode
import qrcode.image.svg
from flask import current_app, url_for


def public_url_for(code: str) -> str:
    """Absolute URL of the public sheet for a short code."""
    base = (current_app.config.get("PUBLIC_BASE_URL") or "").strip().rstrip("/")
    if base:
        return f"{base}{url_for('public.view_sheet', code=code)}"
    return url_for("public.view_sheet", code=code, _external=True)


def render_qr_svg(data: str, box_size: int = 10, border: int = 4) -> bytes:
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
        image_factory=qrcode.image.svg.SvgPathImage,
    )
    qr.add_data(data)
    qr.make(fit=True)

    buffer = BytesIO()
    qr.make_image().save(buffer)
    return buffer.getvalue()
