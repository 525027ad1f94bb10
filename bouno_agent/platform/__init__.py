"""Platform layer: agent engine, clients, observability and settings."""
