"""Device acquisition and lifecycle."""
