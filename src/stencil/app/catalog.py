"""Template catalog: the list of templates a user can pick from."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Iterator, Tuple

import yaml
from jsonschema import Draft202012Validator

from stencil.domain.errors import CatalogError, ValidationError
from stencil.domain.template import TemplateDescriptor, TemplateKind
from stencil.resources import load_default_catalog, load_schema
from stencil.settings import RuntimeSettings

_SCHEMA_RESOURCE = "catalog.schema.json"


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    return Draft202012Validator(load_schema(_SCHEMA_RESOURCE))


def iter_schema_errors(payload: dict[str, Any]) -> Iterator[Tuple[str, str]]:
    """Yield (path, message) pairs for schema issues in the catalog."""
    for error in _validator().iter_errors(payload):
        path = ".".join(str(item) for item in error.absolute_path)
        yield path, error.message


class TemplateCatalog:
    def __init__(self, templates: Iterable[TemplateDescriptor], *, source: str = "package") -> None:
        self._templates = {template.template_id: template for template in templates}
        self.source = source

    @classmethod
    def from_payload(cls, payload: Any, *, source: str) -> "TemplateCatalog":
        if not isinstance(payload, dict):
            raise CatalogError(f"catalog {source} must be a mapping")
        errors = [f"{path or '<root>'}: {message}" for path, message in iter_schema_errors(payload)]
        if errors:
            raise CatalogError(f"catalog {source} is invalid: " + "; ".join(errors))
        return cls((TemplateDescriptor.from_dict(item) for item in payload["templates"]), source=source)

    @classmethod
    def from_file(cls, path: Path) -> "TemplateCatalog":
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise CatalogError(f"cannot read catalog {path}: {exc}") from exc
        return cls.from_payload(payload, source=str(path))

    @classmethod
    def load(cls, settings: RuntimeSettings) -> "TemplateCatalog":
        if settings.catalog_path is not None:
            return cls.from_file(settings.catalog_path)
        if settings.user_catalog_file.exists():
            return cls.from_file(settings.user_catalog_file)
        return cls.from_payload(load_default_catalog(), source="package")

    def list_templates(self, kind: TemplateKind | None = None) -> list[TemplateDescriptor]:
        templates = sorted(self._templates.values(), key=lambda item: item.template_id)
        if kind is None:
            return templates
        return [template for template in templates if template.kind == kind]

    def get(self, template_id: str, kind: TemplateKind | None = None) -> TemplateDescriptor:
        template = self._templates.get(template_id)
        if template is None or (kind is not None and template.kind != kind):
            available = ", ".join(item.template_id for item in self.list_templates(kind)) or "none"
            raise ValidationError(f"unknown template '{template_id}'. Available: {available}")
        return template
