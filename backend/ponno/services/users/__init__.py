"""User data access."""
