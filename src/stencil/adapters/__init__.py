"""Concrete adapters for registry, package backend and prompting ports."""
