"""Remora - shared agent memory over a durable store and an in-memory similarity index."""

__version__ = "1.0.0"
