# ragfuse/cli/__init__.py
"""Command-line interface."""
