"""Packaged JSON schemas for covgate documents."""
