# ragfuse/logging/tags.py
"""
Logging subsystem tags.

Every log line starts with one of these so output stays greppable
across modules.
"""

CHUNKING = "[CHUNKING]"
EMBEDDING = "[EMBEDDING]"
RETRIEVER = "[RETRIEVER]"
VECTOR_DB = "[VECTOR_DB]"
RERANK = "[RERANK]"
HYDE = "[HYDE]"
CHAT = "[CHAT]"
STORAGE = "[STORAGE]"
CONFIG = "[CONFIG]"
METRICS = "[METRICS]"
CLI = "[CLI]"
RETRY = "[RETRY]"
