"""Processing orchestration module."""
from .processor import LedgerPipeline, PipelineResult

__all__ = ["LedgerPipeline", "PipelineResult"]
