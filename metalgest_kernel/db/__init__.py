"""Database infrastructure: declarative base, column types, engine/session management."""
