"""Generation job scheduling and maintenance."""
