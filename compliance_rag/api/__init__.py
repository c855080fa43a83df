"""HTTP API for the document pipeline."""
