"""In-place Jinja2 rendering of copied template trees."""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from fnmatch import fnmatch
from pathlib import Path
from typing import Any, Iterable, Mapping

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from stencil.domain.errors import RenderError

logger = logging.getLogger(__name__)

BINARY_SNIFF_BYTES = 8192


# EJS-style tags so that Vue and other mustache syntax passes through untouched
TAG_DELIMITERS = {
    "block_start_string": "<%",
    "block_end_string": "%>",
    "variable_start_string": "<%=",
    "variable_end_string": "%>",
    "comment_start_string": "<%#",
    "comment_end_string": "%>",
}


def _environment() -> SandboxedEnvironment:
    env = SandboxedEnvironment(undefined=StrictUndefined, keep_trailing_newline=True, **TAG_DELIMITERS)
    env.globals = {}
    return env


def is_ignored(relative: str, patterns: Iterable[str]) -> bool:
    for pattern in patterns:
        if fnmatch(relative, pattern):
            return True
        # "**/x" also matches "x" at the top level
        if pattern.startswith("**/") and fnmatch(relative, pattern[3:]):
            return True
    return False


def collect_files(root: Path, ignore: Iterable[str] = ()) -> list[Path]:
    patterns = tuple(ignore)
    files: list[Path] = []
    for candidate in sorted(root.rglob("*")):
        if not candidate.is_file():
            continue
        if is_ignored(candidate.relative_to(root).as_posix(), patterns):
            continue
        files.append(candidate)
    return files


def _read_text(path: Path) -> str | None:
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise RenderError(f"failed to read {path}: {exc}") from exc
    if b"\0" in data[:BINARY_SNIFF_BYTES]:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def render_file(path: Path, variables: Mapping[str, Any], env: SandboxedEnvironment | None = None) -> bool:
    """Render ``path`` in place. Returns False when the file is binary and was left alone."""
    source = _read_text(path)
    if source is None:
        logger.debug("skip binary file %s", path)
        return False
    environment = env or _environment()
    try:
        rendered = environment.from_string(source).render(**variables)
    except TemplateError as exc:
        raise RenderError(f"failed to render {path}: {exc}") from exc
    try:
        path.write_text(rendered, encoding="utf-8")
    except OSError as exc:
        raise RenderError(f"failed to write {path}: {exc}") from exc
    return True


def render_tree(
    root: Path,
    variables: Mapping[str, Any],
    ignore: Iterable[str] = (),
    *,
    max_workers: int | None = None,
) -> list[Path]:
    """Render every non-ignored text file under ``root`` concurrently.

    Fails fast on the first error; files rendered before the failure stay
    overwritten. Returns the rendered files sorted by path.
    """
    files = collect_files(root, ignore)
    if not files:
        return []
    env = _environment()
    rendered: list[Path] = []
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {pool.submit(render_file, path, variables, env): path for path in files}
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in pending:
            future.cancel()
        for future in done:
            error = future.exception()
            if error is not None:
                raise error
        for future, path in futures.items():
            if future.result():
                rendered.append(path)
    logger.debug("rendered %d file(s) under %s", len(rendered), root)
    return sorted(rendered)
