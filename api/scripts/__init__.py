"""Operational scripts: daily streak batch and milestone seeding."""
