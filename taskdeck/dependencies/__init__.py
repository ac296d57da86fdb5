"""Request dependencies."""
