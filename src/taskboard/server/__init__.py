"""HTTP API for taskboard."""
