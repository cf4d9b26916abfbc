"""Database infrastructure for the verification history store."""
