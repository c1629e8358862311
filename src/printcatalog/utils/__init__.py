"""Shared helper utilities for printcatalog."""
