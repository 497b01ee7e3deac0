"""Database session and metadata helpers."""
