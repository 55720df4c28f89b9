"""
convoflow: durable ingestion and structure recompute pipeline for
conversational text.
"""

__version__ = "0.1.0"
