"""Service layer shared by the HTTP routes and the scheduler."""
