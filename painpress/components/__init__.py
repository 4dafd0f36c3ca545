"""Interactive component tooling: sanitize, extract, validate, bundle."""
