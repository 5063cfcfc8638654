"""
PackWarden Updates Package

Release discovery, download and signature verification.
"""

from .bundle import ReleaseBundle
from .github import ReleaseRepository, RemoteRelease
from .verifier import ReleaseVerifier

__all__ = [
    "ReleaseBundle",
    "ReleaseRepository",
    "RemoteRelease",
    "ReleaseVerifier",
]
