"""Develop server building blocks: state machine, pages, diagnostics, activities."""
