# ragfuse/cli/commands/__init__.py
"""CLI command implementations (imported lazily by ragfuse.cli.cli)."""
