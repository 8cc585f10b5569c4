"""Utility modules for shelf."""
