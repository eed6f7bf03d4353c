"""Background workflows triggered by the HTTP API."""
