"""Application services for template installation and cache management."""
