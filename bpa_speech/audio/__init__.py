"""Audio payload helpers."""
