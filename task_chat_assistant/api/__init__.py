"""Authentication helpers for the HTTP API."""
