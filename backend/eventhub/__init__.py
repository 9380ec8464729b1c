"""EventHub: event discovery and booking API."""
