"""Utility modules for Offline Notes."""
