# ragfuse/ingestion/__init__.py
"""Document ingestion: chunking."""
