"""Task filing and lifecycle."""
