"""
Pytest fixtures for develop server testing.

This module provides:
1. Test environment variables
2. A throwaway project directory with a renderer entry module
3. Settings and page registry fixtures
4. Cleanup of the process-wide render pool
"""

import os
import sys
import textwrap
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from devserver.config import Settings, get_settings  # noqa: E402
from devserver.core.pages import PageRegistry  # noqa: E402
from devserver.execution import shutdown_render_pool  # noqa: E402


# ==================== RENDERER SOURCE ====================

# Line numbers matter: tests assert that failures point at line 5.
RENDERER_SOURCE = textwrap.dedent('''\
    PAGES = {"/about": "<html>About</html>"}


    def explode(path):
        raise ValueError(f"cannot render {path}\\nbroken page template")


    def render_page(path):
        if path == "/broken":
            explode(path)
        return PAGES.get(path, f"<html>{path}</html>")
''')

RENDERER_FAILING_LINE = 5


# ==================== SESSION FIXTURES ====================

@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up test environment variables once per session."""
    os.environ["DEVSERVER_ENVIRONMENT"] = "testing"
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ==================== PROJECT FIXTURES ====================

@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Project directory containing public/render_page.py."""
    public = tmp_path / "public"
    public.mkdir()
    (public / "render_page.py").write_text(RENDERER_SOURCE, encoding="utf-8")
    return tmp_path


@pytest.fixture
def renderer_path(project_dir: Path) -> str:
    return str((project_dir / "public" / "render_page.py").resolve())


@pytest.fixture
def renderer_failing_line() -> int:
    return RENDERER_FAILING_LINE


@pytest.fixture
def settings(project_dir: Path) -> Settings:
    """Settings using thread isolation so tests don't spawn processes."""
    return Settings(
        environment="testing",
        directory=str(project_dir),
        render_isolation="thread",
    )


@pytest.fixture
def pages() -> PageRegistry:
    registry = PageRegistry()
    registry.add("/about", component="about")
    registry.add("/broken", component="broken")
    return registry


# ==================== CLEANUP ====================

@pytest.fixture(autouse=True)
def reset_render_pool():
    """Never leak the process-wide render pool between tests."""
    yield
    shutdown_render_pool(wait=False)
