"""Concrete agents built on the platform layer."""
