"""Query, authorization and domain-hierarchy core of a work-item routing engine."""

__version__ = "0.1.0"
