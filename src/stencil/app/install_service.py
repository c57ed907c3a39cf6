"""Install templates from the registry cache into a user's codebase."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from stencil.app.catalog import TemplateCatalog
from stencil.app.dependencies import DependencyConflict, ManifestDependency
from stencil.app.installers import CustomInstaller, InstallContext, Installer, InstallOutcome, NormalInstaller
from stencil.app.package import PackageHandle
from stencil.app.section import SectionPlacement, plan_section, write_lines
from stencil.app.versions import is_valid_version
from stencil.domain.errors import CollisionError, InstallError, TemplateMissingError, ValidationError
from stencil.domain.template import InstallKind, PackageSpec, ProjectInfo, TemplateDescriptor, TemplateKind
from stencil.ports.backend import PackageBackend
from stencil.ports.registry import RegistryClient
from stencil.settings import RuntimeSettings
from stencil.utils.telemetry import record_event

logger = logging.getLogger(__name__)

PAGE_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")
PROJECT_NAME_PATTERN = re.compile(
    r"^[a-zA-Z]+([-][a-zA-Z][a-zA-Z0-9]*|[_][a-zA-Z][a-zA-Z0-9]*|[a-zA-Z0-9])*$"
)


@dataclass(frozen=True)
class PageRequest:
    template_id: str
    name: str
    cwd: Path
    local_path: Path | None = None


@dataclass(frozen=True)
class SectionRequest:
    template_id: str
    name: str
    source_file: Path
    line: object
    local_path: Path | None = None


@dataclass(frozen=True)
class InitRequest:
    template_id: str
    project: ProjectInfo
    cwd: Path
    local_path: Path | None = None


@dataclass
class InstallReport:
    template: TemplateDescriptor
    version: str
    action: str
    package_root: Path
    target_path: Path
    rendered: list[Path] = field(default_factory=list)
    added: list[ManifestDependency] = field(default_factory=list)
    conflicts: list[DependencyConflict] = field(default_factory=list)
    modified: list[Path] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "template": self.template.template_id,
            "package": self.template.package.name,
            "version": self.version,
            "action": self.action,
            "install": self.template.install_kind.value,
            "package_root": str(self.package_root),
            "target": str(self.target_path),
            "rendered": [str(path) for path in self.rendered],
            "added": [{"name": dep.name, "range": dep.range} for dep in self.added],
            "conflicts": [
                {"name": c.name, "template": c.template_range, "target": c.target_range} for c in self.conflicts
            ],
            "modified": [str(path) for path in self.modified],
        }


def validate_page_name(name: str) -> str:
    candidate = (name or "").strip()
    if not candidate:
        raise ValidationError("name is required")
    if not PAGE_NAME_PATTERN.match(candidate):
        raise ValidationError(f"invalid name '{candidate}': use letters, digits, '-' or '_' and start with a letter")
    return candidate


def validate_project(project: ProjectInfo) -> None:
    if not PROJECT_NAME_PATTERN.match(project.name or ""):
        raise ValidationError(f"invalid project name '{project.name}'")
    if not is_valid_version(project.version):
        raise ValidationError(f"invalid project version '{project.version}'")


class InstallService:
    """Resolve, cache and materialise templates for page, section and init flows."""

    def __init__(
        self,
        settings: RuntimeSettings,
        registry: RegistryClient,
        backend: PackageBackend,
        catalog: TemplateCatalog,
        *,
        installers: dict[InstallKind, Installer] | None = None,
    ) -> None:
        self._settings = settings
        self._registry = registry
        self._backend = backend
        self._catalog = catalog
        self._installers = installers or {
            InstallKind.NORMAL: NormalInstaller(),
            InstallKind.CUSTOM: CustomInstaller(settings.node_bin),
        }

    @property
    def catalog(self) -> TemplateCatalog:
        return self._catalog

    def add_page(self, request: PageRequest) -> InstallReport:
        started = time.monotonic()
        name = validate_page_name(request.name)
        template = self._catalog.get(request.template_id, TemplateKind.PAGE)
        target_path = request.cwd.expanduser().resolve() / name
        self._ensure_free(target_path)

        handle, action = self._acquire(template.package, request.local_path)
        template_path = self._template_path(handle, template)
        context = InstallContext(
            template_path=template_path,
            target_path=target_path,
            variables={"name": name.lower()},
            ignore=template.ignore,
            options={
                "templatePath": str(template_path),
                "targetPath": str(target_path),
                "templateDescriptor": {**template.to_dict(), "targetName": name},
            },
        )
        outcome = self._run(template, handle, context)
        report = self._report(template, handle, action, outcome)
        self._record("add.page", report, started)
        return report

    def add_section(self, request: SectionRequest) -> InstallReport:
        started = time.monotonic()
        template = self._catalog.get(request.template_id, TemplateKind.SECTION)
        source_file = request.source_file.expanduser().resolve()
        placement, new_lines = plan_section(validate_page_name(request.name), source_file, request.line)
        target_path = placement.target_dir
        self._ensure_free(target_path)

        handle, action = self._acquire(template.package, request.local_path)
        template_path = self._template_path(handle, template)
        context = InstallContext(
            template_path=template_path,
            target_path=target_path,
            variables={"name": placement.name.lower()},
            ignore=template.ignore,
            options={
                "templatePath": str(template_path),
                "targetPath": str(target_path),
                "templateDescriptor": {
                    **template.to_dict(),
                    "targetName": placement.name,
                    "sourceFile": str(source_file),
                    "line": placement.line,
                },
            },
        )
        outcome = self._run(template, handle, context)
        self._splice(placement, new_lines)
        report = self._report(template, handle, action, outcome)
        report.modified.append(source_file)
        self._record("add.section", report, started)
        return report

    def init_project(self, request: InitRequest) -> InstallReport:
        started = time.monotonic()
        validate_project(request.project)
        template = self._catalog.get(request.template_id, TemplateKind.PROJECT)
        target_path = request.cwd.expanduser().resolve() / request.project.name
        self._ensure_free(target_path)

        handle, action = self._acquire(template.package, request.local_path)
        template_path = self._template_path(handle, template)
        context = InstallContext(
            template_path=template_path,
            target_path=target_path,
            variables=request.project.variables(),
            ignore=template.ignore,
            options={
                "templateInfo": template.to_dict(),
                "projectInfo": request.project.to_dict(),
                "sourcePath": str(template_path),
                "targetPath": str(target_path),
            },
            # the copied manifest is the project's own
            merge_dependencies=False,
        )
        outcome = self._run(template, handle, context)
        report = self._report(template, handle, action, outcome)
        self._record("init", report, started)
        return report

    def _ensure_free(self, target_path: Path) -> None:
        if target_path.exists() or target_path.is_symlink():
            raise CollisionError(f"target already exists: {target_path}")

    def _acquire(self, spec: PackageSpec, local_path: Path | None) -> tuple[PackageHandle, str]:
        if local_path is not None:
            handle = PackageHandle(spec, target_root=local_path.expanduser().resolve(), registry=self._registry)
            if not handle.exists():
                raise TemplateMissingError(f"local template package not found: {handle.target_root}")
            return handle, "local"

        handle = PackageHandle(
            spec,
            target_root=self._settings.template_root,
            store_dir=self._settings.store_dir,
            registry=self._registry,
            backend=self._backend,
        )
        if handle.exists():
            logger.info("updating template %s", handle.name)
            handle.update()
            action = "update"
        else:
            logger.info("downloading template %s@%s", handle.name, handle.version)
            handle.install()
            action = "install"
        if not handle.exists():
            raise InstallError(f"{handle.name}@{handle.version} is missing from the cache after {action}")
        logger.debug("template cached at %s", handle.cache_path)
        return handle, action

    def _template_path(self, handle: PackageHandle, template: TemplateDescriptor) -> Path:
        template_path = handle.template_dir(template.template_root)
        if not template_path.is_dir():
            raise TemplateMissingError(f"template root not found: {template_path}")
        return template_path

    def _run(self, template: TemplateDescriptor, handle: PackageHandle, context: InstallContext) -> InstallOutcome:
        if template.install_kind is InstallKind.CUSTOM:
            context.entry_point = handle.entry_point()
        installer = self._installers[template.install_kind]
        logger.info("installing %s into %s", template.display_name, context.target_path)
        return installer.install(context)

    def _splice(self, placement: SectionPlacement, lines: list[str]) -> None:
        write_lines(
            placement.source_file, lines, newline=placement.newline, trailing_newline=placement.trailing_newline
        )
        logger.info("wired %s into %s at line %d", placement.component_name, placement.source_file, placement.line)

    def _report(
        self,
        template: TemplateDescriptor,
        handle: PackageHandle,
        action: str,
        outcome: InstallOutcome,
    ) -> InstallReport:
        merge = outcome.merge
        return InstallReport(
            template=template,
            version=handle.version,
            action=action,
            package_root=handle.root,
            target_path=outcome.target_path,
            rendered=outcome.rendered,
            added=list(merge.added) if merge else [],
            conflicts=list(merge.conflicts) if merge else [],
        )

    def _record(self, event: str, report: InstallReport, started: float) -> None:
        record_event(
            self._settings,
            event,
            {
                "template": report.template.template_id,
                "package": report.template.package.name,
                "version": report.version,
                "action": report.action,
                "conflicts": len(report.conflicts),
            },
            status="ok",
            duration_ms=(time.monotonic() - started) * 1000,
        )
