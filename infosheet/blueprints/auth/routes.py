"""
Authentication Routes

Provides:
- /auth/register
- /auth/login
- /auth/logout
- /auth/delete-account

Rules:
- Emails are unique and compared lower-cased.
- Only active users may log in.
- Deleting the account deletes the profile and its short code (FK cascade).
"""

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import (
    current_user,
    login_required,
    login_user,
    logout_user,
)

from ...audit import log_action, serialize_model
from ...extensions import db
from ...models import User
from ...security import anonymous_required, forbidden, safe_next_url


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _looks_like_email(value: str) -> bool:
    local, sep, domain = value.partition("@")
    return bool(sep and local and "." in domain and " " not in value)


# ============================================================
# REGISTER
# ============================================================

@auth_bp.route("/register", methods=["GET", "POST"])
@anonymous_required
def register():
    """Create an account and log it in."""
    min_length = current_app.config.get("PASSWORD_MIN_LENGTH", 8)

    if request.method == "POST":
        email = User.normalize_email(request.form.get("email"))
        display_name = (request.form.get("display_name") or "").strip() or None
        password = request.form.get("password", "")
        confirm = request.form.get("confirm_password", "")

        if not _looks_like_email(email) or len(email) > 255:
            flash("Enter a valid email address.", "danger")
            return render_template("auth/register.html", email=email, display_name=display_name), 400

        if display_name and len(display_name) > 120:
            flash("Name is too long (max 120 characters).", "danger")
            return render_template("auth/register.html", email=email, display_name=display_name), 400

        if len(password) < min_length:
            flash(f"Password must be at least {min_length} characters.", "danger")
            return render_template("auth/register.html", email=email, display_name=display_name), 400

        if password != confirm:
            flash("Passwords do not match.", "danger")
            return render_template("auth/register.html", email=email, display_name=display_name), 400

        if User.query.filter_by(email=email).first():
            flash("An account with this email already exists.", "danger")
            return render_template("auth/register.html", email=email, display_name=display_name), 400

        user = User(email=email, display_name=display_name, is_active=True)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()

        login_user(user)

        log_action(user, "CREATE", after=serialize_model(user))
        db.session.commit()

        current_app.logger.info("Registered user %s", user.id)
        flash("Welcome! Create your emergency sheet to get your QR code.", "success")
        return redirect(url_for("profile.create_profile"))

    return render_template("auth/register.html")


# ============================================================
# LOGIN
# ============================================================

@auth_bp.route("/login", methods=["GET", "POST"])
@anonymous_required
def login():
    """
    Authenticate a user.

    - Only active users may log in
    - Credentials validated via password hash
    """
    if request.method == "POST":
        email = User.normalize_email(request.form.get("email"))
        password = request.form.get("password", "")
        remember = bool(request.form.get("remember"))

        user = User.query.filter_by(email=email).first()

        if not user or not user.check_password(password):
            current_app.logger.warning("Failed login from %s", request.remote_addr)
            flash("Wrong email or password.", "danger")
            return render_template("auth/login.html", email=email), 401

        if not user.is_active:
            current_app.logger.warning("Login attempt on inactive account %s", user.id)
            flash("This account is disabled.", "danger")
            return forbidden()

        login_user(user, remember=remember)
        flash("Welcome back!", "success")

        next_url = safe_next_url(request.args.get("next"))
        return redirect(next_url or url_for("profile.dashboard"))

    return render_template("auth/login.html")


# ============================================================
# LOGOUT
# ============================================================

@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    """Log out the current user."""
    logout_user()
    flash("You have been logged out.", "info")
    return redirect(url_for("auth.login"))


# ============================================================
# DELETE ACCOUNT
# ============================================================

@auth_bp.route("/delete-account", methods=["GET", "POST"])
@login_required
def delete_account():
    """
    Permanently delete the current account.

    The password is asked again. The profile and short code go with the user.
    """
    if request.method == "POST":
        password = request.form.get("password", "")
        if not current_user.check_password(password):
            flash("Wrong password. Your account was not deleted.", "danger")
            return render_template("auth/delete_account.html"), 400

        user = db.session.get(User, current_user.id)
        email = user.email
        before = serialize_model(user)

        db.session.delete(user)
        db.session.flush()

        # Anonymous from here on: the audit row must not point at the deleted user.
        logout_user()
        log_action(user, "DELETE", before=before, email=email)
        db.session.commit()

        current_app.logger.info("Deleted user %s", before.get("id"))
        flash("Your account and emergency sheet were deleted.", "info")
        return redirect(url_for("auth.login"))

    return render_template("auth/delete_account.html")
