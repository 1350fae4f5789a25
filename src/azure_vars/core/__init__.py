"""Core browsing engine: remote client, cache, filtering and interaction state."""
