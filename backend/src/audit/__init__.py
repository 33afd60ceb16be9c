"""Audit logging for security-relevant events."""
