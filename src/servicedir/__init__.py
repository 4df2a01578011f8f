"""Local services directory: listings, distance-aware search, and a small HTTP API."""

__version__ = "0.1.0"
