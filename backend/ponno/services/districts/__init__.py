"""District data access and administration."""
