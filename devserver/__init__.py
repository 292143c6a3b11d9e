"""Development server with isolated server-side rendering."""

__version__ = "0.1.0"
