"""
Secret handling for job configurations.
"""

from .key import DecryptionError, KeyRing, RepositoryKey
from .protector import REDACTED, SECURE_MARKER, ConfigProtector, EnvResult

__all__ = [
    "REDACTED",
    "SECURE_MARKER",
    "ConfigProtector",
    "DecryptionError",
    "EnvResult",
    "KeyRing",
    "RepositoryKey",
]
