"""HTTP API package (FastAPI) for the MinFS gateway."""
