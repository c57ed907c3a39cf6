"""Domain objects shared across stencil services."""

from .errors import (
    BackendError,
    CatalogError,
    CollisionError,
    CustomEntryMissingError,
    CustomInstallError,
    InstallError,
    ManifestError,
    RegistryError,
    RenderError,
    StencilError,
    TemplateMissingError,
    UpdateError,
    ValidationError,
)
from .template import LATEST, InstallKind, PackageSpec, ProjectInfo, TemplateDescriptor, TemplateKind

__all__ = [
    "BackendError",
    "CatalogError",
    "CollisionError",
    "CustomEntryMissingError",
    "CustomInstallError",
    "InstallError",
    "InstallKind",
    "LATEST",
    "ManifestError",
    "PackageSpec",
    "ProjectInfo",
    "RegistryError",
    "RenderError",
    "StencilError",
    "TemplateDescriptor",
    "TemplateKind",
    "TemplateMissingError",
    "UpdateError",
    "ValidationError",
]
