"""Splice a section's usage tag and import into an existing source file."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from stencil.domain.errors import InstallError, ValidationError

SCRIPT_MARKER = "<script>"
COMPONENTS_DIR = "components"
SECTION_ENTRY = "index.vue"


def pascal_case(name: str) -> str:
    words = [word for word in re.split(r"[-_\s]+", name.strip()) if word]
    return "".join(word[:1].upper() + word[1:] for word in words)


def kebab_case(name: str) -> str:
    pascal = pascal_case(name)
    return re.sub(r"(?<!^)(?=[A-Z])", "-", pascal).lower()


def parse_line_number(raw: object) -> int:
    """Accept ints or decimal strings >= 0; anything else is rejected."""
    if isinstance(raw, bool):
        raise ValidationError(f"insertion line must be a non-negative integer, got {raw!r}")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and raw.strip().isdigit():
        value = int(raw.strip())
    else:
        raise ValidationError(f"insertion line must be a non-negative integer, got {raw!r}")
    if value < 0:
        raise ValidationError(f"insertion line must be a non-negative integer, got {value}")
    return value


@dataclass(frozen=True)
class SectionPlacement:
    """Where and how a section is wired into ``source_file``."""

    name: str
    source_file: Path
    line: int
    newline: str = "\n"
    trailing_newline: bool = True

    @property
    def component_name(self) -> str:
        return pascal_case(self.name)

    @property
    def tag(self) -> str:
        tag_name = kebab_case(self.name)
        return f"<{tag_name}></{tag_name}>"

    @property
    def import_statement(self) -> str:
        component = self.component_name
        return f"import {component} from './{COMPONENTS_DIR}/{component}/{SECTION_ENTRY}'"

    @property
    def target_dir(self) -> Path:
        return self.source_file.parent / COMPONENTS_DIR / self.component_name


def splice_section(lines: list[str], placement: SectionPlacement) -> list[str]:
    """Insert the tag at ``placement.line``, then the import after the first line that is exactly ``<script>``."""
    if placement.line > len(lines):
        raise ValidationError(
            f"insertion line {placement.line} is out of range for {placement.source_file} ({len(lines)} lines)"
        )
    result = list(lines)
    result.insert(placement.line, placement.tag)
    for index, line in enumerate(result):
        if line.rstrip("\r") == SCRIPT_MARKER:
            result.insert(index + 1, placement.import_statement)
            return result
    raise ValidationError(f"{placement.source_file} has no {SCRIPT_MARKER} line to import the section from")


def plan_section(name: str, source_file: Path, raw_line: object) -> tuple[SectionPlacement, list[str]]:
    """Validate everything and compute the new file content without writing it."""
    if not name or not name.strip():
        raise ValidationError("section name is required")
    if not source_file.is_file():
        raise ValidationError(f"source file not found: {source_file}")
    line = parse_line_number(raw_line)
    try:
        text = source_file.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ValidationError(f"cannot read {source_file} as UTF-8 text: {exc}") from exc
    placement = SectionPlacement(
        name=name.strip(),
        source_file=source_file,
        line=line,
        newline="\r\n" if "\r\n" in text else "\n",
        trailing_newline=text.endswith(("\n", "\r")),
    )
    return placement, splice_section(text.splitlines(), placement)


def write_lines(path: Path, lines: list[str], *, newline: str = "\n", trailing_newline: bool = True) -> None:
    """Write ``lines`` joined by ``newline`` without platform newline translation."""
    text = newline.join(lines)
    if trailing_newline:
        text += newline
    try:
        path.write_bytes(text.encode("utf-8"))
    except OSError as exc:
        raise InstallError(f"cannot write {path}: {exc}") from exc
