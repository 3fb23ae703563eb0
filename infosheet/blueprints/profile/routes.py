"""
infosheet/blueprints/profile/routes.py

Profile routes (all protected).

Scope:
- Dashboard with the sheet, its public URL and QR code
- Create / edit / delete the user's single Profile
- Regenerate the short code
- QR image (SVG) for printing

SECURITY:
- The Profile is always resolved through current_user (see security.profile_required).
  No route accepts a profile id, so a user cannot reach another user's profile.

AUDIT:
- CREATE/UPDATE/DELETE/REGENERATE_CODE are audited via infosheet/audit.py.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional, Tuple

from flask import (
    Blueprint,
    Response,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user, login_required

from ...audit import log_action, serialize_model
from ...extensions import db
from ...models import BLOOD_TYPES, Profile
from ...qr import public_url_for, render_qr_svg
from ...security import profile_required
from ...shortcodes import ShortCodeExhaustedError, allocate_short_code, regenerate_short_code

profile_bp = Blueprint("profile", __name__, url_prefix="/profile")


# ----------------------------------------------------------------------
# Form handling
# ----------------------------------------------------------------------
# field name -> (label, max length, required)
TEXT_FIELDS: Dict[str, Tuple[str, int, bool]] = {
    "child_name": ("Child's name", 120, True),
    "primary_contact_name": ("Primary contact name", 120, True),
    "primary_contact_phone": ("Primary contact phone", 40, True),
    "secondary_contact_name": ("Secondary contact name", 120, False),
    "secondary_contact_phone": ("Secondary contact phone", 40, False),
    "doctor_name": ("Doctor", 120, False),
    "doctor_phone": ("Doctor's phone", 40, False),
    "allergies": ("Allergies", 2000, False),
    "medications": ("Medications", 2000, False),
    "medical_conditions": ("Medical conditions", 2000, False),
    "notes": ("Notes", 4000, False),
}


def _parse_optional_date(value: str) -> Optional[date]:
    """Parse an ISO date (YYYY-MM-DD) from form data. Raises ValueError on bad input."""
    if not value:
        return None
    return date.fromisoformat(value)


def _read_profile_form() -> Tuple[Dict[str, object], List[str]]:
    """
    Read and validate the profile form.

    Returns (values, errors). Values are only meaningful when errors is empty.
    """
    values: Dict[str, object] = {}
    errors: List[str] = []

    for name, (label, max_length, required) in TEXT_FIELDS.items():
        raw = (request.form.get(name) or "").strip()
        if required and not raw:
            errors.append(f"{label} is required.")
        elif len(raw) > max_length:
            errors.append(f"{label} is too long (max {max_length} characters).")
        values[name] = raw or None

    blood_type = (request.form.get("blood_type") or "").strip().upper()
    if blood_type and blood_type not in BLOOD_TYPES:
        errors.append("Unknown blood type.")
    values["blood_type"] = blood_type or None

    dob_raw = (request.form.get("date_of_birth") or "").strip()
    try:
        dob = _parse_optional_date(dob_raw)
    except ValueError:
        errors.append("Date of birth must be a valid date (YYYY-MM-DD).")
        dob = None
    if dob and dob > date.today():
        errors.append("Date of birth cannot be in the future.")
    values["date_of_birth"] = dob

    return values, errors


def _apply(profile: Profile, values: Dict[str, object]) -> None:
    for name, value in values.items():
        setattr(profile, name, value)


# ----------------------------------------------------------------------
# DASHBOARD
# ----------------------------------------------------------------------
@profile_bp.route("/")
@login_required
def dashboard():
    """Show the user's sheet and QR code, or invite them to create one."""
    profile = current_user.profile
    public_url = public_url_for(profile.code) if profile and profile.code else None
    return render_template(
        "profile/dashboard.html",
        profile=profile,
        public_url=public_url,
        today=date.today(),
    )


# ----------------------------------------------------------------------
# CREATE
# ----------------------------------------------------------------------
@profile_bp.route("/new", methods=["GET", "POST"])
@login_required
def create_profile():
    """Create the user's profile and allocate its short code in one transaction."""
    if current_user.profile is not None:
        flash("You already have an emergency sheet.", "info")
        return redirect(url_for("profile.dashboard"))

    if request.method == "POST":
        values, errors = _read_profile_form()
        if errors:
            for message in errors:
                flash(message, "danger")
            return render_template("profile/form.html", profile=None, values=values, blood_types=BLOOD_TYPES), 400

        profile = Profile(user_id=current_user.id)
        _apply(profile, values)
        db.session.add(profile)

        try:
            allocate_short_code(profile)
            db.session.flush()
        except ShortCodeExhaustedError:
            db.session.rollback()
            flash("Could not create a public code right now. Please try again.", "danger")
            return render_template("profile/form.html", profile=None, values=values, blood_types=BLOOD_TYPES), 503

        log_action(profile, "CREATE", after=serialize_model(profile))
        db.session.commit()

        current_app.logger.info("Profile %s created for user %s", profile.id, current_user.id)
        flash("Your emergency sheet is ready.", "success")
        return redirect(url_for("profile.dashboard"))

    return render_template("profile/form.html", profile=None, values={}, blood_types=BLOOD_TYPES)


# ----------------------------------------------------------------------
# EDIT
# ----------------------------------------------------------------------
@profile_bp.route("/edit", methods=["GET", "POST"])
@login_required
@profile_required
def edit_profile(profile: Profile):
    """Update the user's own profile."""
    if request.method == "POST":
        values, errors = _read_profile_form()
        if errors:
            for message in errors:
                flash(message, "danger")
            return render_template("profile/form.html", profile=profile, values=values, blood_types=BLOOD_TYPES), 400

        before = serialize_model(profile)
        _apply(profile, values)
        db.session.flush()

        log_action(profile, "UPDATE", before=before, after=serialize_model(profile))
        db.session.commit()

        flash("Your emergency sheet was updated.", "success")
        return redirect(url_for("profile.dashboard"))

    values = {name: getattr(profile, name) for name in (*TEXT_FIELDS, "blood_type", "date_of_birth")}
    return render_template("profile/form.html", profile=profile, values=values, blood_types=BLOOD_TYPES)


# ----------------------------------------------------------------------
# DELETE
# ----------------------------------------------------------------------
@profile_bp.route("/delete", methods=["POST"])
@login_required
@profile_required
def delete_profile(profile: Profile):
    """Delete the profile; its short code goes with it and the QR code stops resolving."""
    before = serialize_model(profile)

    db.session.delete(profile)
    db.session.flush()

    log_action(profile, "DELETE", before=before)
    db.session.commit()

    current_app.logger.info("Profile %s deleted by user %s", before.get("id"), current_user.id)
    flash("Your emergency sheet was deleted.", "info")
    return redirect(url_for("profile.dashboard"))


# ----------------------------------------------------------------------
# SHORT CODE
# ----------------------------------------------------------------------
@profile_bp.route("/regenerate-code", methods=["POST"])
@login_required
@profile_required
def regenerate_code(profile: Profile):
    """Give the profile a new public code (e.g. after a printed card was lost)."""
    old_code = profile.code

    try:
        regenerate_short_code(profile)
        db.session.flush()
    except ShortCodeExhaustedError:
        db.session.rollback()
        flash("Could not create a new code right now. Please try again.", "danger")
        return redirect(url_for("profile.dashboard"))

    log_action(
        profile.short_code,
        "REGENERATE_CODE",
        before={"code": old_code},
        after={"code": profile.code},
    )
    db.session.commit()

    current_app.logger.info("Short code regenerated for profile %s", profile.id)
    flash("A new code was generated. Print the new QR code; the old one no longer works.", "success")
    return redirect(url_for("profile.dashboard"))


@profile_bp.route("/qr.svg")
@login_required
@profile_required
def qr_image(profile: Profile):
    """QR code (SVG) pointing at the public sheet. ?download=1 sends it as a file."""
    if not profile.code:
        try:
            allocate_short_code(profile)
            db.session.commit()
        except ShortCodeExhaustedError:
            db.session.rollback()
            return Response(
                "Could not create a public code right now. Please try again.",
                status=503,
                mimetype="text/plain",
            )

    svg = render_qr_svg(public_url_for(profile.code))
    response = Response(svg, mimetype="image/svg+xml")
    response.headers["Cache-Control"] = "private, no-store"
    if request.args.get("download"):
        response.headers["Content-Disposition"] = f'attachment; filename="infosheet-{profile.code}.svg"'
    return response
