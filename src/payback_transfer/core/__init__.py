"""Core components of the PayBack transfer engine.

This package contains the line codec, export parser and serializer, conflict
detection, identity resolution, deduplication, the merge committer and the
engine entry points that tie them together.
"""

from .conflicts import ConflictDetector
from .dedup import DeduplicationEngine
from .engine import TransferEngine
from .identity import IdentityResolver
from .merge import MergeCommitter
from .parser import ExportParser
from .serializer import ExportSerializer

__all__ = [
    "ConflictDetector",
    "DeduplicationEngine",
    "ExportParser",
    "ExportSerializer",
    "IdentityResolver",
    "MergeCommitter",
    "TransferEngine",
]
