"""
QR helpers: public URL building and SVG rendering.
"""

from infosheet.qr import public_url_for, render_qr_svg


def test_public_url_from_request(app):
    with app.test_request_context("/", base_url="https://sheets.example.org"):
        assert public_url_for("abc123") == "https://sheets.example.org/qr/abc123"


def test_public_url_from_config(app):
    app.config["PUBLIC_BASE_URL"] = "https://infosheet.example.org/"
    with app.test_request_context("/", base_url="http://internal:8000"):
        assert public_url_for("abc123") == "https://infosheet.example.org/qr/abc123"


def test_render_qr_svg():
    svg = render_qr_svg("https://infosheet.example.org/qr/abc123")

    assert svg.lstrip().startswith(b"<?xml")
    assert b"<svg" in svg
    assert b"<path" in svg


def test_longer_data_grows_the_symbol():
    short = render_qr_svg("x")
    long = render_qr_svg("https://infosheet.example.org/qr/" + "a" * 200)

    assert len(long) > len(short)
