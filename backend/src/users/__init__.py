"""User administration endpoints (administrators only)."""
