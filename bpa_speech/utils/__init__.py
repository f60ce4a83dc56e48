"""Shared utilities: error hierarchy and retry helpers."""
