"""
InfoSheet – Domain Models

- User: login account (email + password hash).
- Profile: the single emergency-info record owned by a user (1-1).
- ShortCode: the public identifier of a profile, embedded in the QR URL (1-1).
- AuditLog: who changed what, with before/after snapshots.

Deleting a User deletes its Profile, and deleting a Profile deletes its ShortCode.
This is enforced twice:
- ORM relationship cascades (session.delete(user))
- database foreign keys with ON DELETE CASCADE (raw SQL deletes, other clients)
"""

from __future__ import annotations

from datetime import datetime

from flask_login import UserMixin
from sqlalchemy import update
from werkzeug.security import check_password_hash, generate_password_hash

from .extensions import db


BLOOD_TYPES = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")


class User(UserMixin, db.Model):
    """Login account of a parent / guardian."""

    __tablename__ = "users"
    __audit_exclude__ = ("password_hash",)

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    display_name = db.Column(db.String(120), nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    profile = db.relationship(
        "Profile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @staticmethod
    def normalize_email(email: str | None) -> str:
        return (email or "").strip().lower()

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f"<User {self.email}>"


class Profile(db.Model):
    """Emergency information sheet about a child, shown publicly through its short code."""

    __tablename__ = "profiles"
    __audit_exclude__ = ("date_of_birth", "blood_type", "allergies", "medications", "medical_conditions", "notes")

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    child_name = db.Column(db.String(120), nullable=False)
    date_of_birth = db.Column(db.Date, nullable=True)
    blood_type = db.Column(db.String(3), nullable=True)

    allergies = db.Column(db.Text, nullable=True)
    medications = db.Column(db.Text, nullable=True)
    medical_conditions = db.Column(db.Text, nullable=True)

    doctor_name = db.Column(db.String(120), nullable=True)
    doctor_phone = db.Column(db.String(40), nullable=True)

    primary_contact_name = db.Column(db.String(120), nullable=False)
    primary_contact_phone = db.Column(db.String(40), nullable=False)
    secondary_contact_name = db.Column(db.String(120), nullable=True)
    secondary_contact_phone = db.Column(db.String(40), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship("User", back_populates="profile")

    short_code = db.relationship(
        "ShortCode",
        back_populates="profile",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def code(self) -> str | None:
        return self.short_code.code if self.short_code else None

    def age_on(self, day) -> int | None:
        """Age in whole years on the given date (None when no birth date is recorded)."""
        if self.date_of_birth is None:
            return None
        dob = self.date_of_birth
        years = day.year - dob.year
        if (day.month, day.day) < (dob.month, dob.day):
            years -= 1
        return years

    def __repr__(self):
        return f"<Profile {self.id} user={self.user_id}>"


class ShortCode(db.Model):
    """Random public identifier of a Profile."""

    __tablename__ = "short_codes"

    id = db.Column(db.Integer, primary_key=True)

    code = db.Column(db.String(16), unique=True, nullable=False, index=True)

    profile_id = db.Column(
        db.Integer,
        db.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    view_count = db.Column(db.Integer, default=0, nullable=False)
    last_viewed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    profile = db.relationship("Profile", back_populates="short_code")

    @classmethod
    def record_view(cls, short_code_id: int) -> None:
        """Count one public view as a single UPDATE so concurrent scans are not lost."""
        db.session.execute(
            update(cls)
            .where(cls.id == short_code_id)
            .values(view_count=cls.view_count + 1, last_viewed_at=datetime.utcnow())
        )

    def __repr__(self):
        return f"<ShortCode {self.code}>"


class AuditLog(db.Model):
    """Audit trail of account and profile mutations."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    email_snapshot = db.Column(db.String(255), nullable=True)

    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=False, index=True)

    action = db.Column(db.String(20), nullable=False, index=True)

    before_data = db.Column(db.Text, nullable=True)
    after_data = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship("User", backref=db.backref("audit_entries", lazy=True, passive_deletes=True))
