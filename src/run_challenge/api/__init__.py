"""HTTP API for the running challenge."""
