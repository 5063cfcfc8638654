"""
PackWarden Utility Functions

Common helper functions used throughout the application.
"""

import hashlib
import json
from datetime import datetime, timezone
from typing import Any


def get_current_timestamp() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def hash_bytes(data: bytes, algorithm: str = "sha512") -> str:
    """
    Compute hash of bytes.
    
    Args:
        data: Bytes to hash
        algorithm: Hash algorithm (sha256, sha512)
        
    Returns:
        Hexadecimal hash string
    """
    hasher = hashlib.new(algorithm)
    hasher.update(data)
    return hasher.hexdigest()


def safe_json_loads(data: str, default: Any = None) -> Any:
    """
    Safely parse JSON string.
    
    Args:
        data: JSON string to parse
        default: Default value if parsing fails
        
    Returns:
        Parsed JSON object or default value
    """
    try:
        return json.loads(data)
    except (json.JSONDecodeError, TypeError):
        return default
