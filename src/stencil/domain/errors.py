"""Error taxonomy for stencil operations."""

from __future__ import annotations


class StencilError(RuntimeError):
    """Base class for errors that abort a stencil command."""


class ValidationError(StencilError):
    """Raised for invalid user input before any file is touched."""


class CollisionError(StencilError):
    """Raised when the install target already exists."""


class RegistryError(StencilError):
    """Raised when a version lookup returns nothing usable."""


class BackendError(StencilError):
    """Raised by package backends when a package cannot be materialised."""


class InstallError(StencilError):
    """Raised when a template package cannot be installed into the cache."""


class ManifestError(InstallError):
    """Raised when a package.json cannot be read, parsed or rewritten."""


class UpdateError(StencilError):
    """Raised when a cached template package cannot be refreshed."""


class TemplateMissingError(StencilError):
    """Raised when an installed package lacks the declared template root."""


class CustomEntryMissingError(StencilError):
    """Raised when a custom template has no resolvable entry point."""


class CustomInstallError(StencilError):
    """Raised when a custom entry point exits with a non-zero code."""

    def __init__(self, message: str, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class RenderError(StencilError):
    """Raised when a template file fails to render."""


class CatalogError(StencilError):
    """Raised when the template catalog is missing or invalid."""


__all__ = [
    "BackendError",
    "CatalogError",
    "CollisionError",
    "CustomEntryMissingError",
    "CustomInstallError",
    "InstallError",
    "ManifestError",
    "RegistryError",
    "RenderError",
    "StencilError",
    "TemplateMissingError",
    "UpdateError",
    "ValidationError",
]
