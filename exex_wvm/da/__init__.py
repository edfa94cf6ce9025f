"""
Data-availability helpers: compression of block payloads for settlement.
"""

from exex_wvm.da.compression import process_block, to_compressed

__all__ = ["process_block", "to_compressed"]
