"""Classification taxonomy with per-domain overrides."""
