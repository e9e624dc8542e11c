"""Product data access."""
