"""Blueprint packages (auth, profile, public)."""
