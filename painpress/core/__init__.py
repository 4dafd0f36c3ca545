"""Service plumbing: database, logging, errors, middleware, lifespan."""
