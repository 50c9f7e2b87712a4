"""Domain route modules."""
