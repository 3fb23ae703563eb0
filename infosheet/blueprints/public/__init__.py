from .routes import public_bp  # noqa: F401
