"""Debug-bridge transports."""
