"""Channel transports."""
