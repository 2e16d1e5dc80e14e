"""Build stages applied to a single drone."""
