"""Drift conversation reference resolution backend."""
