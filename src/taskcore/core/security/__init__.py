"""Security utilities.

Re-exports token helpers for convenience.
"""

from src.taskcore.core.security.crypto import generate_token, hash_token

__all__ = [
    "generate_token",
    "hash_token",
]
