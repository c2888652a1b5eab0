"""HTTP API for the workflow engine."""
