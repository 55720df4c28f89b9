"""Import processing pipeline."""

from convoflow.core.import_pipeline.handler import ImportJobHandler

__all__ = ["ImportJobHandler"]
