"""Persistence interfaces and Postgres implementations."""
