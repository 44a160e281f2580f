"""
M-Pesa Ledger - structured transactions from mobile-money confirmation SMS.

Modules:
- parser: keyword gate, field extractors, transaction builder, deduplication
- sources: message sources and the concurrent source aggregator
- orchestrator: end-to-end pipeline
- report: date-range filters, search and totals
- config: YAML settings
"""
from .parser import ParsedTransaction, RawMessage, TransactionType, parse_message
from .orchestrator import LedgerPipeline, PipelineResult

__version__ = "0.1.0"

__all__ = [
    "ParsedTransaction",
    "RawMessage",
    "TransactionType",
    "parse_message",
    "LedgerPipeline",
    "PipelineResult",
]
