"""
SSR Error Diagnostics

Turns a failed render into something a developer can act on: the source file,
line and column the failure points at, a colorized excerpt of that code, and a
short message.

Stack traces are not standardized, so every parsing step fails soft: an
unrecognized stack produces an empty position and an unreadable file produces
an empty excerpt. Nothing here raises.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from pathlib import Path, PurePath

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.style import Style
from pygments.token import (
    Comment,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Token,
)
from pygments.util import ClassNotFound

from devserver.config import CodeFramePalette, CodeFrameSettings
from devserver.errors import format_stack

logger = logging.getLogger(__name__)

# "    at render (/project/public/render_page.py:10:3)"
FRAME_LOCATION_RE = re.compile(r"\((?P<location>[^()]+:\d+:\d+)\)\s*$")


@dataclass(frozen=True)
class ErrorPosition:
    filename: str
    line: int
    column: int


@dataclass(frozen=True)
class Diagnostic:
    """Structured, read-only view of one failed render."""
    filename: str
    line: int
    column: int
    code: str
    code_frame: str
    message: str
    error_type: str
    stack: str


UNKNOWN_POSITION = ErrorPosition(filename="", line=0, column=0)


def get_position(stack_lines: list[str]) -> ErrorPosition:
    """
    Find the failing source location in a stack trace.

    Uses the first ``name (file:line:column)`` frame whose file is not a
    synthetic ``<...>`` name; falls back to the first raw line for stacks that
    have no such frame.
    """
    try:
        frames = [
            match.group("location")
            for match in map(FRAME_LOCATION_RE.search, stack_lines)
            if match
        ]
        if frames:
            location = next((f for f in frames if not f.startswith("<")), frames[0])
        else:
            location = stack_lines[0].strip()
            if location.startswith("at "):
                location = location[3:]

        filename, line, column = location.rsplit(":", 2)
        return ErrorPosition(filename=filename, line=int(line), column=int(column))
    except (IndexError, ValueError):
        return UNKNOWN_POSITION


def build_style(palette: CodeFramePalette) -> type[Style]:
    """Pygments style using the configured palette."""

    def color(value: str) -> str:
        return f"#{value.lstrip('#')}"

    return type(
        "CodeFrameStyle",
        (Style,),
        {
            "background_color": color(palette.background),
            "styles": {
                Token: color(palette.text),
                Keyword: color(palette.keyword),
                Name.Builtin: color(palette.keyword),
                Name.Class: color(palette.yellow),
                Name.Function: color(palette.yellow),
                Name.Decorator: color(palette.yellow),
                String: color(palette.green),
                Number: color(palette.dark_green),
                Operator: color(palette.yellow),
                Punctuation: color(palette.yellow),
                Comment: color(palette.comment),
            },
        },
    )


class ErrorTranslator:
    """
    Converts a render failure into a Diagnostic.

    Args:
        directory: Project directory that stack file names are resolved against
        settings: Code frame settings (path stripping, context, palette)
    """

    def __init__(self, directory: str, settings: CodeFrameSettings | None = None):
        self.directory = directory
        self.settings = settings or CodeFrameSettings()
        self._formatter = HtmlFormatter(
            nowrap=True,
            noclasses=True,
            style=build_style(self.settings.palette),
        )

    def resolve_filename(self, parsed: str) -> str:
        """
        Map a stack trace file name to a file in the project directory.

        Drops ``strip_segments`` leading segments (the root anchor is not
        counted) to undo the prefix the build output adds.
        """
        if not parsed:
            return ""
        if parsed.startswith("<"):
            # "<frozen importlib._bootstrap>", "<string>": not on disk
            return parsed
        pure = PurePath(parsed)
        strip = self.settings.strip_segments
        if strip == 0:
            return str(Path(self.directory) / pure)
        segments = [part for part in pure.parts if part != pure.anchor]
        return str(Path(self.directory).joinpath(*segments[strip:]))

    def code_frame(self, code: str, filename: str, line: int, column: int) -> str:
        """Colorized HTML excerpt around ``line`` with a caret under ``column``."""
        source_lines = code.splitlines()
        if line < 1 or line > len(source_lines):
            return ""

        try:
            lexer = get_lexer_for_filename(filename, stripnl=False)
        except ClassNotFound:
            lexer = TextLexer(stripnl=False)
        highlighted = highlight(code, lexer, self._formatter).split("\n")

        palette = self.settings.palette
        first = max(1, line - self.settings.lines_above)
        last = min(len(source_lines), line + self.settings.lines_below)
        width = len(str(last))

        out = []
        for number in range(first, last + 1):
            body = highlighted[number - 1] if number - 1 < len(highlighted) else ""
            if number == line:
                gutter = html.escape(f"> {number:>{width}} |")
                out.append(f'<span style="color:#{palette.keyword}">{gutter}</span> {body}')
                if column > 0:
                    padding = " " * (width + 2)
                    caret = " " * (column - 1) + "^"
                    out.append(
                        f'<span style="color:#{palette.gutter}">  {padding}|</span> '
                        f'<span style="color:#{palette.keyword}">{caret}</span>'
                    )
            else:
                gutter = html.escape(f"  {number:>{width}} |")
                out.append(f'<span style="color:#{palette.gutter}">{gutter}</span> {body}')
        return "\n".join(out)

    def translate(self, err: BaseException) -> Diagnostic:
        """Build a Diagnostic for ``err``. Never raises."""
        stack = getattr(err, "stack", None) or format_stack(err)
        position = get_position(stack.split("\n"))
        filename = self.resolve_filename(position.filename)

        code = ""
        code_frame = ""
        if filename:
            try:
                code = Path(filename).read_text(encoding="utf-8")
                code_frame = self.code_frame(code, filename, position.line, position.column)
            except (OSError, UnicodeDecodeError) as e:
                logger.debug(f"Cannot read source for SSR error excerpt {filename}: {e}")

        raw_message = getattr(err, "message", None)
        if not isinstance(raw_message, str):
            raw_message = str(err)
        message = raw_message.split("\n")[-1]

        error_type = getattr(err, "error_type", None) or type(err).__name__

        return Diagnostic(
            filename=filename,
            line=position.line,
            column=position.column,
            code=code,
            code_frame=code_frame,
            message=message,
            error_type=error_type,
            stack=stack,
        )
