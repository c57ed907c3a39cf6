"""Port definitions (abstract collaborators) for stencil services."""
