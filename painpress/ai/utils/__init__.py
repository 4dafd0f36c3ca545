"""AI helper utilities."""
