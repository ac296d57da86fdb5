"""Task management services."""
