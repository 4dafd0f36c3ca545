"""HTTP surface for the admin and internal task routes."""
