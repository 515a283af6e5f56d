"""Core infrastructure: logging, database and exceptions."""
