"""Offline Notes - local-first notes with a versioned store and offline cache."""

__version__ = "0.3.0"
