"""Status polling and notification engine."""
