"""View hierarchy introspection."""
