"""HTTP layer: JSON endpoints, relays and the app shell."""
