"""HTTP API layer: routes, schemas, middleware and request authentication."""
