"""Shared infrastructure: errors, logging, caching, health."""
