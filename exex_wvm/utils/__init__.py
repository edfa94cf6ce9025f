"""
Utilities package for the ExEx BigQuery sink.

Cross-cutting helpers only; keep domain and BigQuery logic out of here.
"""

from exex_wvm.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
