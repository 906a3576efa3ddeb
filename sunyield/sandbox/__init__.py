"""In-memory sandbox of the platform backend, for local runs and tests."""
