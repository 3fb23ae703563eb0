"""
Shared pytest fixtures.

Fixture Hierarchy:
    app           Flask app on TestingConfig (in-memory SQLite, CSRF off), tables created
    client        Flask test client
    make_user     factory creating User rows directly
    login         helper posting to /auth/login
    auth_client   client already logged in as parent@example.com
    profile_form  a valid profile form payload

The app context is NOT kept pushed during requests: Flask would reuse it and
share `g` (and therefore Flask-Login's cached user) between requests.
"""

import pytest

from infosheet import create_app
from infosheet.extensions import db
from infosheet.models import User

PASSWORD = "correct-horse-battery"


@pytest.fixture
def app():
    app = create_app("config.TestingConfig")
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(email="parent@example.com", password=PASSWORD, is_active=True):
        with app.app_context():
            user = User(email=email, is_active=is_active)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make_user


@pytest.fixture
def login():
    def _login(client, email="parent@example.com", password=PASSWORD, **query):
        return client.post(
            "/auth/login",
            query_string=query,
            data={"email": email, "password": password},
        )

    return _login


@pytest.fixture
def auth_client(client, make_user, login):
    make_user()
    response = login(client)
    assert response.status_code == 302
    return client


@pytest.fixture
def profile_form():
    return {
        "child_name": "Mia Example",
        "date_of_birth": "2017-05-04",
        "blood_type": "O+",
        "allergies": "Peanuts",
        "medications": "",
        "medical_conditions": "Asthma",
        "primary_contact_name": "Sam Example",
        "primary_contact_phone": "+44 20 7946 0000",
        "secondary_contact_name": "",
        "secondary_contact_phone": "",
        "doctor_name": "Dr. Rivera",
        "doctor_phone": "+44 20 7946 0999",
        "notes": "Carries an inhaler in the front pocket of her bag.",
    }
