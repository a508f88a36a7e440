"""Utility functions and exceptions."""

from .exceptions import (
    ChunkSubmissionError,
    FormatError,
    InvalidFormatError,
    MalformedRowError,
    MissingGroupMappingError,
    RemoteAuthenticationError,
    RemoteError,
    RemoteSubmissionError,
    TransferError,
)

__all__ = [
    "TransferError",
    "FormatError",
    "InvalidFormatError",
    "MalformedRowError",
    "MissingGroupMappingError",
    "RemoteError",
    "RemoteSubmissionError",
    "RemoteAuthenticationError",
    "ChunkSubmissionError",
]
