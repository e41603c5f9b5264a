"""Event resolution, formatting and note integration."""
