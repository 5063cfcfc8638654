"""
PackWarden Utilities Package
"""

from .helpers import (
    get_current_timestamp,
    hash_bytes,
    safe_json_loads,
)

__all__ = [
    "get_current_timestamp",
    "hash_bytes",
    "safe_json_loads",
]
