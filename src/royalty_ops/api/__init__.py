"""HTTP API for royalty operations."""
