#!/usr/bin/env python3
"""Entry point for the stencil CLI."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections import deque
from pathlib import Path
from textwrap import dedent
from typing import Any

from stencil import __version__
from stencil.adapters.console_prompter import ConsolePrompter
from stencil.adapters.npm_registry import NpmRegistryClient
from stencil.adapters.tarball_backend import TarballBackend
from stencil.app.cache_service import CacheService
from stencil.app.catalog import TemplateCatalog
from stencil.app.install_service import (
    InitRequest,
    InstallReport,
    InstallService,
    PageRequest,
    PROJECT_NAME_PATTERN,
    SectionRequest,
)
from stencil.app.versions import is_valid_version
from stencil.domain.errors import StencilError, ValidationError
from stencil.domain.template import ProjectInfo, TemplateKind
from stencil.ports.prompter import Prompter
from stencil.ports.registry import RegistryClient
from stencil.settings import RuntimeSettings, load_settings
from stencil.utils.telemetry import clear as telemetry_clear
from stencil.utils.telemetry import iter_events as telemetry_iter
from stencil.utils.telemetry import record_event
from stencil.utils.telemetry import summarize as telemetry_summarize
from stencil.utils.update_notice import maybe_notify

HELP_OVERVIEW = dedent(
    """
    Scaffold projects, pages and sections from registry-hosted templates.

    Examples:
      stencil init my-app --template vue2-project
      stencil add page Home --template vue2-home
      stencil add section List --file src/views/Home/index.vue --line 3
    """
)

DEFAULT_PROJECT_VERSION = "1.0.0"

SETTINGS: RuntimeSettings = load_settings()
PROMPTER: Prompter = ConsolePrompter()

logger = logging.getLogger("stencil")


def _configure_logging(debug: bool) -> None:
    for handler in [h for h in logger.handlers if getattr(h, "_stencil", False)]:
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("stencil: %(message)s"))
    handler._stencil = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)


def _make_registry(settings: RuntimeSettings) -> RegistryClient:
    return NpmRegistryClient(settings.registry_url, timeout=settings.http_timeout)


def _build_install_service(registry: RegistryClient) -> InstallService:
    backend = TarballBackend(registry, timeout=max(SETTINGS.http_timeout, 60.0))
    return InstallService(SETTINGS, registry, backend, TemplateCatalog.load(SETTINGS))


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _print_report(report: InstallReport, as_json: bool) -> None:
    if as_json:
        _emit(report.to_dict())
        return
    print(f"Installed {report.template.display_name} ({report.template.package.name}@{report.version}) into {report.target_path}")
    for dep in report.added:
        print(f"  + {dep.name} {dep.range}")
    for conflict in report.conflicts:
        print(f"  ! {conflict.describe()}")
    for path in report.modified:
        print(f"  ~ {path}")


def _cwd(path_arg: str | None) -> Path:
    if path_arg:
        return Path(path_arg).expanduser().resolve()
    return Path(os.getcwd())


def _local(path_arg: str | None) -> Path | None:
    return Path(path_arg).expanduser().resolve() if path_arg else None


def _pick_template(service: InstallService, template_id: str | None, kind: TemplateKind) -> str:
    if template_id:
        return template_id
    templates = service.catalog.list_templates(kind)
    if not templates:
        raise ValidationError(f"no {kind.value} templates in catalog {service.catalog.source}")
    if len(templates) == 1:
        return templates[0].template_id
    choices = [(f"{item.display_name} ({item.template_id})", item.template_id) for item in templates]
    return PROMPTER.choose(f"Choose a {kind.value} template", choices)


def _require_text(value: str | None, message: str, validate=None, default: str = "") -> str:
    if value is not None:
        return value
    return PROMPTER.text(message, default=default, validate=validate)


def _non_empty(answer: str) -> str | None:
    return None if answer.strip() else "A value is required."


def _project_name(answer: str) -> str | None:
    return None if PROJECT_NAME_PATTERN.match(answer) else "Invalid project name."


def _project_version(answer: str) -> str | None:
    return None if is_valid_version(answer) else "Invalid version (expected semver, e.g. 1.0.0)."


def _init_cmd(args: argparse.Namespace) -> int:
    service = _build_install_service(args.registry)
    name = _require_text(args.name, "Project name", _project_name)
    version = _require_text(args.project_version, "Project version", _project_version, DEFAULT_PROJECT_VERSION)
    description = args.description if args.description is not None else ""
    template_id = _pick_template(service, args.template, TemplateKind.PROJECT)
    report = service.init_project(
        InitRequest(
            template_id=template_id,
            project=ProjectInfo(name=name, version=version, description=description),
            cwd=_cwd(args.path),
            local_path=_local(args.local),
        )
    )
    _print_report(report, args.json)
    return 0


def _add_page_cmd(args: argparse.Namespace) -> int:
    service = _build_install_service(args.registry)
    name = _require_text(args.name, "Page name", _non_empty)
    template_id = _pick_template(service, args.template, TemplateKind.PAGE)
    report = service.add_page(
        PageRequest(template_id=template_id, name=name, cwd=_cwd(args.path), local_path=_local(args.local))
    )
    _print_report(report, args.json)
    return 0


def _add_section_cmd(args: argparse.Namespace) -> int:
    service = _build_install_service(args.registry)
    name = _require_text(args.name, "Section name", _non_empty)
    source = _require_text(args.file, "Source file to insert the section into", _non_empty)
    line = _require_text(args.line, "Insertion line (0-based)", _non_empty)
    template_id = _pick_template(service, args.template, TemplateKind.SECTION)
    report = service.add_section(
        SectionRequest(
            template_id=template_id,
            name=name,
            source_file=Path(source),
            line=line,
            local_path=_local(args.local),
        )
    )
    _print_report(report, args.json)
    return 0


def _templates_cmd(args: argparse.Namespace) -> int:
    catalog = TemplateCatalog.load(SETTINGS)
    kind = TemplateKind(args.kind) if args.kind else None
    templates = catalog.list_templates(kind)
    if args.json:
        _emit([template.to_dict() for template in templates])
    elif not templates:
        print("No templates in catalog", file=sys.stderr)
        return 1
    else:
        for template in templates:
            print(f"{template.template_id:<24} {template.kind.value:<8} {template.package}  {template.display_name}")
    record_event(SETTINGS, "templates", {"count": len(templates), "source": catalog.source})
    return 0


def _cache_cmd(args: argparse.Namespace) -> int:
    service = CacheService(SETTINGS)
    if args.cache_command == "list":
        packages = service.list_packages()
        if args.json:
            _emit([package.to_dict() for package in packages])
        elif not packages:
            print("Template cache is empty")
        else:
            for package in packages:
                print(f"{package.name}@{package.version}  {package.path}")
        return 0
    removed = service.clear()
    record_event(SETTINGS, "cache.clear", {"removed": removed})
    print(f"Removed {removed} cached package(s)")
    return 0


def _telemetry_cmd(args: argparse.Namespace) -> int:
    if args.telemetry_command == "report":
        recent = getattr(args, "recent", 0)
        if recent and recent > 0:
            events = list(deque(telemetry_iter(SETTINGS), maxlen=recent))
        else:
            events = list(telemetry_iter(SETTINGS))
        _emit(telemetry_summarize(events))
        return 0
    if telemetry_clear(SETTINGS):
        print("Telemetry log cleared")
    else:
        print("Telemetry log is already empty")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stencil",
        description=HELP_OVERVIEW,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"stencil {__version__}")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")

    sub = parser.add_subparsers(dest="command", required=True)

    init_cmd = sub.add_parser("init", help="Create a new project from a project template")
    init_cmd.add_argument("name", nargs="?", help="Project name")
    init_cmd.add_argument("--template", help="Template id from the catalog")
    init_cmd.add_argument("--version", dest="project_version", help="Project version (default: prompt, 1.0.0)")
    init_cmd.add_argument("--description", help="Project description")
    init_cmd.add_argument("--path", help="Parent directory (default: current directory)")
    init_cmd.add_argument("--local", help="Use a template package already on disk")
    init_cmd.add_argument("--json", action="store_true", help="Emit machine-readable report")
    init_cmd.set_defaults(func=_init_cmd)

    add_cmd = sub.add_parser("add", help="Add a page or a section to an existing codebase")
    add_sub = add_cmd.add_subparsers(dest="add_command", required=True)

    page_cmd = add_sub.add_parser("page", help="Create a page directory from a page template")
    page_cmd.add_argument("name", nargs="?", help="Page name")
    page_cmd.add_argument("--template", help="Template id from the catalog")
    page_cmd.add_argument("--path", help="Directory to create the page in (default: current directory)")
    page_cmd.add_argument("--local", help="Use a template package already on disk")
    page_cmd.add_argument("--json", action="store_true", help="Emit machine-readable report")
    page_cmd.set_defaults(func=_add_page_cmd)

    section_cmd = add_sub.add_parser("section", help="Insert a section component into a source file")
    section_cmd.add_argument("name", nargs="?", help="Section name")
    section_cmd.add_argument("--file", help="Source file that will use the section")
    section_cmd.add_argument("--line", help="0-based line to insert the usage tag at")
    section_cmd.add_argument("--template", help="Template id from the catalog")
    section_cmd.add_argument("--local", help="Use a template package already on disk")
    section_cmd.add_argument("--json", action="store_true", help="Emit machine-readable report")
    section_cmd.set_defaults(func=_add_section_cmd)

    templates_cmd = sub.add_parser("templates", help="List catalog templates")
    templates_cmd.add_argument("--kind", choices=[kind.value for kind in TemplateKind])
    templates_cmd.add_argument("--json", action="store_true")
    templates_cmd.set_defaults(func=_templates_cmd)

    cache_cmd = sub.add_parser("cache", help="Inspect or clear the template cache")
    cache_sub = cache_cmd.add_subparsers(dest="cache_command", required=True)
    cache_list = cache_sub.add_parser("list", help="List cached template packages")
    cache_list.add_argument("--json", action="store_true")
    cache_sub.add_parser("clear", help="Remove every cached template package")
    cache_cmd.set_defaults(func=_cache_cmd)

    telemetry_cmd = sub.add_parser("telemetry", help="Inspect local telemetry logs")
    telemetry_sub = telemetry_cmd.add_subparsers(dest="telemetry_command", required=True)
    report_cmd = telemetry_sub.add_parser("report", help="Summarise recorded events")
    report_cmd.add_argument("--recent", type=int, default=0, help="Only the last N events")
    telemetry_sub.add_parser("clear", help="Delete the telemetry log")
    telemetry_cmd.set_defaults(func=_telemetry_cmd)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    _configure_logging(args.debug)
    registry = _make_registry(SETTINGS)
    args.registry = registry
    maybe_notify(SETTINGS, registry)
    try:
        return args.func(args)
    except StencilError as exc:
        record_event(SETTINGS, "error", {"command": args.command, "type": type(exc).__name__}, level="error", status="error")
        print(f"stencil: error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
