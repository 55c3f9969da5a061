"""Manuscript submission HTTP endpoints."""
