"""Discount stacking and pricing resolution engine."""
