"""Task count aggregates for dashboards."""
