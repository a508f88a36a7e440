"""Persistence layer for local snapshots and resolution files."""

from .snapshot_store import (
    dump_resolutions,
    load_or_create_snapshot,
    load_resolutions,
    load_snapshot,
    save_snapshot,
    write_resolution_template,
)

__all__ = [
    "load_snapshot",
    "load_or_create_snapshot",
    "save_snapshot",
    "load_resolutions",
    "dump_resolutions",
    "write_resolution_template",
]
