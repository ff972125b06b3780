"""Valhalla API: health, status, metrics and sample-data HTTP service."""
