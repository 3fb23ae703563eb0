"""
Profile CRUD tests: ownership, validation, short-code lifecycle, QR image.
"""

import json
from datetime import date, timedelta

import pytest

from infosheet.extensions import db
from infosheet.models import AuditLog, Profile, ShortCode, User

from .conftest import PASSWORD


def _profile_of(app, email="parent@example.com"):
    with app.app_context():
        user = User.query.filter_by(email=email).one()
        profile = user.profile
        if profile is None:
            return None
        return {
            "id": profile.id,
            "child_name": profile.child_name,
            "code": profile.code,
            "blood_type": profile.blood_type,
            "date_of_birth": profile.date_of_birth,
        }


class TestCreateProfile:

    def test_create_allocates_short_code(self, app, auth_client, profile_form):
        response = auth_client.post("/profile/new", data=profile_form)

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/profile/")

        profile = _profile_of(app)
        assert profile["child_name"] == "Mia Example"
        assert profile["blood_type"] == "O+"
        assert profile["date_of_birth"] == date(2017, 5, 4)
        assert len(profile["code"]) == 6
        assert profile["code"].isalnum()

    def test_dashboard_shows_public_url(self, app, auth_client, profile_form):
        auth_client.post("/profile/new", data=profile_form)
        code = _profile_of(app)["code"]

        response = auth_client.get("/profile/")

        assert response.status_code == 200
        assert f"http://localhost/qr/{code}".encode() in response.data
        assert b"Mia Example" in response.data

    def test_dashboard_without_profile_invites_creation(self, auth_client):
        response = auth_client.get("/profile/")

        assert response.status_code == 200
        assert b"No emergency sheet yet" in response.data

    def test_second_profile_is_refused(self, app, auth_client, profile_form):
        auth_client.post("/profile/new", data=profile_form)

        response = auth_client.post("/profile/new", data=dict(profile_form, child_name="Other"))

        assert response.status_code == 302
        with app.app_context():
            assert Profile.query.count() == 1
            assert Profile.query.one().child_name == "Mia Example"

    @pytest.mark.parametrize(
        "override",
        [
            {"child_name": ""},
            {"primary_contact_name": "   "},
            {"primary_contact_phone": ""},
            {"blood_type": "C+"},
            {"date_of_birth": "04/05/2017"},
            {"date_of_birth": (date.today() + timedelta(days=1)).isoformat()},
            {"child_name": "x" * 121},
        ],
    )
    def test_invalid_form_is_rejected(self, app, auth_client, profile_form, override):
        response = auth_client.post("/profile/new", data=dict(profile_form, **override))

        assert response.status_code == 400
        with app.app_context():
            assert Profile.query.count() == 0
            assert ShortCode.query.count() == 0

    def test_blood_type_is_normalized(self, app, auth_client, profile_form):
        auth_client.post("/profile/new", data=dict(profile_form, blood_type="ab-"))

        assert _profile_of(app)["blood_type"] == "AB-"

    def test_create_is_audited_without_medical_details(self, app, auth_client, profile_form):
        auth_client.post("/profile/new", data=profile_form)

        with app.app_context():
            entry = AuditLog.query.filter_by(entity_type="Profile", action="CREATE").one()
            after = json.loads(entry.after_data)
            assert after["child_name"] == "Mia Example"
            assert "allergies" not in after
            assert "medical_conditions" not in after
            assert entry.email_snapshot == "parent@example.com"


class TestEditProfile:

    def test_edit_without_profile_redirects_to_create(self, auth_client):
        response = auth_client.get("/profile/edit")

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/profile/new")

    def test_edit_form_is_prefilled(self, auth_client, profile_form):
        auth_client.post("/profile/new", data=profile_form)

        response = auth_client.get("/profile/edit")

        assert response.status_code == 200
        assert b'value="Mia Example"' in response.data
        assert b'value="2017-05-04"' in response.data

    def test_edit_updates_own_profile_and_keeps_code(self, app, auth_client, profile_form):
        auth_client.post("/profile/new", data=profile_form)
        before = _profile_of(app)

        response = auth_client.post("/profile/edit", data=dict(profile_form, child_name="Mia B. Example"))

        assert response.status_code == 302
        after = _profile_of(app)
        assert after["child_name"] == "Mia B. Example"
        assert after["code"] == before["code"]
        assert after["id"] == before["id"]

    def test_invalid_edit_changes_nothing(self, app, auth_client, profile_form):
        auth_client.post("/profile/new", data=profile_form)

        response = auth_client.post("/profile/edit", data=dict(profile_form, child_name=""))

        assert response.status_code == 400
        assert _profile_of(app)["child_name"] == "Mia Example"

    def test_user_only_ever_edits_their_own_profile(self, app, client, make_user, login, profile_form):
        make_user(email="a@example.com")
        make_user(email="b@example.com")

        login(client, email="a@example.com")
        client.post("/profile/new", data=dict(profile_form, child_name="Child A"))
        client.post("/auth/logout")

        login(client, email="b@example.com")
        client.post("/profile/new", data=dict(profile_form, child_name="Child B"))
        client.post("/profile/edit", data=dict(profile_form, child_name="Child B2", id="1", user_id="1"))

        assert _profile_of(app, "a@example.com")["child_name"] == "Child A"
        assert _profile_of(app, "b@example.com")["child_name"] == "Child B2"


class TestDeleteProfile:

    def test_delete_removes_profile_and_code(self, app, auth_client, profile_form):
        auth_client.post("/profile/new", data=profile_form)
        code = _profile_of(app)["code"]

        response = auth_client.post("/profile/delete")

        assert response.status_code == 302
        with app.app_context():
            assert Profile.query.count() == 0
            assert ShortCode.query.count() == 0
            assert User.query.count() == 1
        assert auth_client.get(f"/qr/{code}").status_code == 404

    def test_delete_only_touches_own_profile(self, app, client, make_user, login, profile_form):
        make_user(email="a@example.com")
        make_user(email="b@example.com")
        login(client, email="a@example.com")
        client.post("/profile/new", data=profile_form)
        client.post("/auth/logout")

        login(client, email="b@example.com")
        response = client.post("/profile/delete")

        # b has no profile: sent to the create page, a's profile untouched
        assert response.headers["Location"].endswith("/profile/new")
        assert _profile_of(app, "a@example.com") is not None


class TestRegenerateCode:

    def test_regenerate_replaces_code(self, app, auth_client, profile_form):
        auth_client.post("/profile/new", data=profile_form)
        old_code = _profile_of(app)["code"]
        assert auth_client.get(f"/qr/{old_code}").status_code == 200

        response = auth_client.post("/profile/regenerate-code")

        assert response.status_code == 302
        new_code = _profile_of(app)["code"]
        assert new_code != old_code
        assert auth_client.get(f"/qr/{old_code}").status_code == 404
        assert auth_client.get(f"/qr/{new_code}").status_code == 200

        with app.app_context():
            assert ShortCode.query.count() == 1
            entry = AuditLog.query.filter_by(action="REGENERATE_CODE").one()
            assert json.loads(entry.before_data) == {"code": old_code}
            assert json.loads(entry.after_data) == {"code": new_code}

    def test_exhausted_generator_keeps_old_code(self, app, auth_client, profile_form, monkeypatch):
        auth_client.post("/profile/new", data=profile_form)
        old_code = _profile_of(app)["code"]
        # every candidate collides with the code already in use
        monkeypatch.setattr("infosheet.shortcodes.generate_short_code", lambda length=6: old_code)

        response = auth_client.post("/profile/regenerate-code")

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/profile/")
        assert _profile_of(app)["code"] == old_code
        assert auth_client.get(f"/qr/{old_code}").status_code == 200
        with app.app_context():
            assert AuditLog.query.filter_by(action="REGENERATE_CODE").count() == 0


class TestQrImage:

    def test_qr_svg(self, auth_client, profile_form):
        auth_client.post("/profile/new", data=profile_form)

        response = auth_client.get("/profile/qr.svg")

        assert response.status_code == 200
        assert response.mimetype == "image/svg+xml"
        assert b"<svg" in response.data
        assert "Content-Disposition" not in response.headers

    def test_qr_svg_download(self, app, auth_client, profile_form):
        auth_client.post("/profile/new", data=profile_form)
        code = _profile_of(app)["code"]

        response = auth_client.get("/profile/qr.svg?download=1")

        assert response.headers["Content-Disposition"] == f'attachment; filename="infosheet-{code}.svg"'

    def test_qr_without_profile_redirects(self, auth_client):
        response = auth_client.get("/profile/qr.svg")

        assert response.status_code == 302

    def test_qr_exhausted_generator_answers_503(self, app, auth_client, make_user, login, profile_form, monkeypatch):
        auth_client.post("/profile/new", data=profile_form)
        taken = _profile_of(app)["code"]

        make_user(email="b@example.com")
        other = app.test_client()
        login(other, email="b@example.com")
        other.post("/profile/new", data=profile_form)
        b_profile_id = _profile_of(app, "b@example.com")["id"]
        with app.app_context():
            ShortCode.query.filter_by(profile_id=b_profile_id).delete()
            db.session.commit()
        monkeypatch.setattr("infosheet.shortcodes.generate_short_code", lambda length=6: taken)

        response = other.get("/profile/qr.svg")

        assert response.status_code == 503
        assert response.mimetype == "text/plain"
        assert _profile_of(app, "b@example.com")["code"] is None
        assert _profile_of(app)["code"] == taken

    def test_qr_allocates_missing_code(self, app, auth_client, profile_form):
        auth_client.post("/profile/new", data=profile_form)
        profile_id = _profile_of(app)["id"]
        with app.app_context():
            ShortCode.query.filter_by(profile_id=profile_id).delete()
            db.session.commit()

        response = auth_client.get("/profile/qr.svg")

        assert response.status_code == 200
        code = _profile_of(app)["code"]
        assert code is not None
        assert auth_client.get(f"/qr/{code}").status_code == 200


def test_password_is_never_echoed(auth_client):
    response = auth_client.get("/profile/")

    assert PASSWORD.encode() not in response.data
