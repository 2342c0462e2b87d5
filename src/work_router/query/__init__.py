"""Immutable query builders for classifications and workbaskets."""
