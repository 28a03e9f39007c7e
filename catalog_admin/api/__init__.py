"""HTTP API for the catalog admin."""
