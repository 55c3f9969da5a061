"""Journal article HTTP endpoints."""
