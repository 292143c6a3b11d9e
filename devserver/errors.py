"""
Custom exception classes for the development server.
"""

import traceback


class DevServerError(Exception):
    """Base class for development server errors."""
    pass


class RenderPoolNotStartedError(DevServerError):
    """Raised when a render is submitted before the worker pool is started."""
    pass


class RenderError(DevServerError):
    """
    A page render that failed inside a render worker.

    Carries the original exception type name and a stack formatted innermost
    frame first, one ``at <function> (<file>:<line>:<column>)`` line per frame,
    so the failure survives pickling across the process boundary and can be
    mapped back to a source location.
    """

    def __init__(self, message: str, error_type: str = "Error", stack: str = ""):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.stack = stack or f"{error_type}: {message}"

    def __reduce__(self):
        return (RenderError, (self.message, self.error_type, self.stack))

    @classmethod
    def from_exception(cls, exc: BaseException) -> "RenderError":
        """Wrap ``exc``, keeping its type name and a formatted stack."""
        if isinstance(exc, RenderError):
            return exc
        error_type = type(exc).__name__
        message = str(exc)
        return cls(message, error_type, format_stack(exc))


def format_stack(exc: BaseException) -> str:
    """
    Format the traceback of ``exc`` innermost frame first.

    Columns are 1-based. Interpreters without column information report 1.
    A SyntaxError is raised by the import machinery, not by the broken file,
    so its own location comes first.
    """
    lines = [f"{type(exc).__name__}: {exc}"]
    if isinstance(exc, SyntaxError) and exc.filename:
        lines.append(f"    at <module> ({exc.filename}:{exc.lineno or 1}:{exc.offset or 1})")
    frames = traceback.extract_tb(exc.__traceback__)
    for frame in reversed(frames):
        colno = getattr(frame, "colno", None)
        column = colno + 1 if colno is not None else 1
        lines.append(f"    at {frame.name} ({frame.filename}:{frame.lineno}:{column})")
    return "\n".join(lines)
