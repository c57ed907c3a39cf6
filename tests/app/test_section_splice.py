from __future__ import annotations

from pathlib import Path

import pytest

from stencil.app.section import (
    SectionPlacement,
    kebab_case,
    parse_line_number,
    plan_section,
    splice_section,
    write_lines,
)
from stencil.domain.errors import ValidationError

VUE_SOURCE = ["<template>", "<script>", "export default {}", "</script>"]


def test_splice_inserts_tag_then_import() -> None:
    placement = SectionPlacement(name="foo", source_file=Path("App.vue"), line=0)

    assert splice_section(VUE_SOURCE, placement) == [
        "<foo></foo>",
        "<template>",
        "<script>",
        "import Foo from './components/Foo/index.vue'",
        "export default {}",
        "</script>",
    ]


def test_splice_allows_appending_after_last_line() -> None:
    placement = SectionPlacement(name="foo", source_file=Path("App.vue"), line=len(VUE_SOURCE))

    result = splice_section(VUE_SOURCE, placement)

    assert result[-1] == "<foo></foo>"


def test_splice_without_script_marker_is_rejected() -> None:
    placement = SectionPlacement(name="foo", source_file=Path("App.vue"), line=0)

    with pytest.raises(ValidationError):
        splice_section(["<template>", "<script setup>", "</script>"], placement)


@pytest.mark.parametrize("raw", ["-1", "abc", "1.5", -3, None, True, 2.0])
def test_parse_line_number_rejects_bad_input(raw: object) -> None:
    with pytest.raises(ValidationError):
        parse_line_number(raw)


def test_parse_line_number_accepts_digits() -> None:
    assert parse_line_number(" 7 ") == 7
    assert parse_line_number(0) == 0


def test_placement_names() -> None:
    placement = SectionPlacement(name="user-list", source_file=Path("/src/views/Home/index.vue"), line=3)

    assert placement.component_name == "UserList"
    assert placement.tag == "<user-list></user-list>"
    assert placement.import_statement == "import UserList from './components/UserList/index.vue'"
    assert placement.target_dir == Path("/src/views/Home/components/UserList")
    assert kebab_case("UserList") == "user-list"


def test_plan_section_does_not_touch_file(tmp_path: Path) -> None:
    source = tmp_path / "index.vue"
    source.write_text("\n".join(VUE_SOURCE) + "\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        plan_section("foo", source, "99")
    placement, lines = plan_section("foo", source, "1")

    assert source.read_text(encoding="utf-8") == "\n".join(VUE_SOURCE) + "\n"
    assert placement.line == 1
    assert lines[1] == "<foo></foo>"


def test_splice_ignores_indented_script_marker() -> None:
    placement = SectionPlacement(name="foo", source_file=Path("App.vue"), line=0)
    source = ["<template>", "  <script>", "</template>", "<script>", "export default {}", "</script>"]

    result = splice_section(source, placement)

    assert result.index("import Foo from './components/Foo/index.vue'") == 5
    assert result[2] == "  <script>"


def test_plan_section_rejects_non_utf8_source(tmp_path: Path) -> None:
    source = tmp_path / "index.vue"
    source.write_bytes(b"<template>\n<script>\n\xff\xfe\n</script>\n")

    with pytest.raises(ValidationError, match="UTF-8"):
        plan_section("foo", source, "0")


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        (
            b"<template>\r\n<script>\r\nexport default {}\r\n</script>\r\n",
            b"<template>\r\n<foo></foo>\r\n<script>\r\nimport Foo from './components/Foo/index.vue'\r\n"
            b"export default {}\r\n</script>\r\n",
        ),
        (
            b"<template>\n<script>\nexport default {}\n</script>",
            b"<template>\n<foo></foo>\n<script>\nimport Foo from './components/Foo/index.vue'\n"
            b"export default {}\n</script>",
        ),
    ],
)
def test_newline_style_survives_round_trip(tmp_path: Path, content: bytes, expected: bytes) -> None:
    source = tmp_path / "index.vue"
    source.write_bytes(content)

    placement, lines = plan_section("foo", source, "1")
    write_lines(source, lines, newline=placement.newline, trailing_newline=placement.trailing_newline)

    assert source.read_bytes() == expected
