"""
Unit tests for SSR error diagnostics.

Tests stack position parsing, source path resolution, code frames and the
soft-fail behavior on unexpected input.
"""

import pytest

from devserver.config import CodeFramePalette, CodeFrameSettings
from devserver.core.diagnostics import ErrorTranslator, build_style, get_position
from devserver.errors import RenderError

PAGE_JS = "\n".join(
    [
        "import React from 'react'",
        "",
        "// Page component",
        "export default function Page(props) {",
        "  const title = props.title",
        "  return (",
        "    <main>",
        "      <h1>{title}</h1>",
        "    </main>",
        "  renderBrokenWidget(props)",
        "  )",
        "}",
    ]
) + "\n"


def stack_for(location: str) -> str:
    return f"Error: boom\n    at Page ({location})\n    at render (/project/lib/render.js:1:1)"


class TestGetPosition:
    """Tests for get_position()"""

    def test_first_frame_with_location(self):
        position = get_position(stack_for("/project/lib/render-page.js:42:7").split("\n"))

        assert position.filename == "/project/lib/render-page.js"
        assert position.line == 42
        assert position.column == 7

    def test_falls_back_to_first_raw_line(self):
        position = get_position(["/project/page.js:3:9", "something else"])

        assert position.filename == "/project/page.js"
        assert position.line == 3
        assert position.column == 9

    def test_message_in_parentheses_is_not_a_frame(self):
        stack = ["ValueError: bad value (expected int)", "    at f (/a/b.py:8:2)"]

        position = get_position(stack)

        assert position.filename == "/a/b.py"
        assert position.line == 8

    def test_skips_synthetic_frames(self):
        stack = [
            "SyntaxError: invalid syntax",
            "    at _call_with_frames_removed (<frozen importlib._bootstrap>:241:12)",
            "    at render (/a/render.py:4:5)",
        ]

        position = get_position(stack)

        assert position.filename == "/a/render.py"
        assert position.line == 4

    def test_only_synthetic_frames(self):
        position = get_position(["Error: x", "    at f (<string>:3:1)"])

        assert position.filename == "<string>"
        assert position.line == 3

    @pytest.mark.parametrize("stack", [["garbage"], [""], [], ["at nowhere (foo)"]])
    def test_unparsable_stack(self, stack):
        position = get_position(stack)

        assert position.filename == ""
        assert position.line == 0
        assert position.column == 0


class TestResolveFilename:
    """Tests for ErrorTranslator.resolve_filename()"""

    def test_strips_wrapping_prefix(self):
        translator = ErrorTranslator("/project", CodeFrameSettings(strip_segments=2))

        assert translator.resolve_filename("/project/lib/render-page.js") == "/project/render-page.js"

    def test_no_stripping_keeps_absolute_path(self):
        translator = ErrorTranslator("/project")

        assert translator.resolve_filename("/srv/app/page.py") == "/srv/app/page.py"

    def test_no_stripping_joins_relative_path(self):
        translator = ErrorTranslator("/project")

        assert translator.resolve_filename("src/page.js") == "/project/src/page.js"

    def test_synthetic_filename_is_not_joined(self):
        translator = ErrorTranslator("/project")

        assert translator.resolve_filename("<frozen importlib._bootstrap>") == "<frozen importlib._bootstrap>"

    def test_empty_filename(self):
        translator = ErrorTranslator("/project", CodeFrameSettings(strip_segments=2))

        assert translator.resolve_filename("") == ""


class TestTranslate:
    """Tests for ErrorTranslator.translate()"""

    def test_position_from_stack_with_prefix(self):
        translator = ErrorTranslator("/project", CodeFrameSettings(strip_segments=2))
        error = RenderError("boom", "Error", stack_for("/project/lib/render-page.js:42:7"))

        diagnostic = translator.translate(error)

        assert diagnostic.filename == "/project/render-page.js"
        assert diagnostic.line == 42
        assert diagnostic.column == 7
        # File does not exist: no excerpt, but no exception either
        assert diagnostic.code == ""
        assert diagnostic.code_frame == ""

    def test_garbage_stack_does_not_raise(self):
        translator = ErrorTranslator("/project", CodeFrameSettings(strip_segments=2))
        error = RenderError("boom", "Error", "garbage")

        diagnostic = translator.translate(error)

        assert diagnostic.filename == ""
        assert diagnostic.line == 0
        assert diagnostic.column == 0
        assert diagnostic.code_frame == ""

    def test_code_frame_for_existing_file(self, tmp_path):
        page = tmp_path / "page.js"
        page.write_text(PAGE_JS, encoding="utf-8")
        translator = ErrorTranslator(str(tmp_path))
        error = RenderError("boom", "Error", stack_for(f"{page}:10:3"))

        diagnostic = translator.translate(error)

        assert diagnostic.filename == str(page)
        assert diagnostic.code == PAGE_JS
        frame_lines = diagnostic.code_frame.split("\n")
        # lines 8-13 clamp to 8-12, plus one caret line
        assert len(frame_lines) == 6
        assert "&gt; 10 |" in diagnostic.code_frame
        assert "renderBrokenWidget" in diagnostic.code_frame
        assert "  ^" in frame_lines[3]
        assert "7 |" not in diagnostic.code_frame

    def test_code_frame_uses_palette(self, tmp_path):
        page = tmp_path / "page.js"
        page.write_text(PAGE_JS, encoding="utf-8")
        palette = CodeFramePalette(keyword="123456", gutter="abcdef")
        translator = ErrorTranslator(str(tmp_path), CodeFrameSettings(palette=palette))

        diagnostic = translator.translate(RenderError("boom", "Error", stack_for(f"{page}:10:3")))

        assert "#123456" in diagnostic.code_frame
        assert "#abcdef" in diagnostic.code_frame

    def test_line_outside_file_gives_empty_frame(self, tmp_path):
        page = tmp_path / "page.js"
        page.write_text(PAGE_JS, encoding="utf-8")
        translator = ErrorTranslator(str(tmp_path))

        diagnostic = translator.translate(RenderError("boom", "Error", stack_for(f"{page}:99:1")))

        assert diagnostic.line == 99
        assert diagnostic.code_frame == ""

    def test_message_is_last_line(self):
        translator = ErrorTranslator("/project")
        error = RenderError("Building static HTML failed\nwindow is not defined", "ReferenceError")

        diagnostic = translator.translate(error)

        assert diagnostic.message == "window is not defined"
        assert diagnostic.error_type == "ReferenceError"

    def test_plain_exception_uses_its_traceback(self):
        translator = ErrorTranslator("/")

        try:
            raise KeyError("missing")
        except KeyError as e:
            diagnostic = translator.translate(e)

        assert diagnostic.error_type == "KeyError"
        assert diagnostic.message == "'missing'"
        assert diagnostic.filename == __file__
        assert diagnostic.line > 0
        assert 'raise KeyError("missing")' in diagnostic.code
        assert "KeyError" in diagnostic.code_frame

    def test_exception_without_traceback(self):
        translator = ErrorTranslator("/project")

        diagnostic = translator.translate(RuntimeError("no frames"))

        assert diagnostic.filename == ""
        assert diagnostic.message == "no frames"
        assert diagnostic.error_type == "RuntimeError"


class TestBuildStyle:
    """Tests for build_style()"""

    def test_background_from_palette(self):
        style = build_style(CodeFramePalette(background="#000000"))

        assert style.background_color == "#000000"
