"""Workbaskets, distribution targets and access control."""
