"""Database models and value objects."""
