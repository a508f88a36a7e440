"""JSON file storage for local snapshots and YAML resolution files.

The engine itself only works on in-memory snapshots. These helpers give the
CLI somewhere to keep one between runs.

Resolution file format (YAML):
    # imported member ID: create_new | <existing member ID>
    0b3a6f9e-...: create_new
    5c21d7aa-...: 7f1d0c44-...
"""

import os
import tempfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from uuid import UUID

import structlog
import yaml
from pydantic import ValidationError

from ..models.domain import GroupMember, LocalSnapshot
from ..models.resolution import Conflict, CreateNew, LinkToExisting, Resolution

logger = structlog.get_logger(__name__)

CREATE_NEW_KEYWORD = "create_new"


def load_snapshot(path: Path) -> LocalSnapshot:
    """
    Load a local snapshot from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a valid snapshot
    """
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {path}")

    try:
        snapshot = LocalSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise ValueError(f"Invalid snapshot file {path}: {e}") from e

    logger.debug(
        "Snapshot loaded",
        path=str(path),
        friends=len(snapshot.friends),
        groups=len(snapshot.groups),
        expenses=len(snapshot.expenses),
    )
    return snapshot


def load_or_create_snapshot(path: Path, user_name: str | None = None) -> LocalSnapshot:
    """
    Load a snapshot, or start an empty one for a new user.

    Args:
        path: Snapshot file
        user_name: Current-user name for a new snapshot

    Raises:
        ValueError: If the file is missing and no user name was given
    """
    if path.exists():
        return load_snapshot(path)
    if not user_name:
        raise ValueError(f"Snapshot file {path} does not exist; pass a user name to create it")
    logger.info("Creating new snapshot", path=str(path), user=user_name)
    return LocalSnapshot(current_user=GroupMember(name=user_name))


def save_snapshot(snapshot: LocalSnapshot, path: Path) -> None:
    """Write a snapshot as JSON, replacing the file atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(snapshot.model_dump_json(indent=2))
        os.replace(temp_path, path)
    except OSError:
        Path(temp_path).unlink(missing_ok=True)
        raise
    logger.debug("Snapshot saved", path=str(path))


def load_resolutions(path: Path) -> dict[UUID, Resolution]:
    """
    Read a YAML resolution file.

    Raises:
        ValueError: On invalid YAML, keys that are not UUIDs, or values that
            are neither ``create_new`` nor a UUID
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in resolution file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid resolution file structure in {path}: "
            f"expected dictionary, got {type(data).__name__}"
        )

    resolutions: dict[UUID, Resolution] = {}
    for key, value in data.items():
        try:
            imported_id = UUID(str(key))
        except ValueError as e:
            raise ValueError(f"Invalid imported member ID in {path}: {key}") from e

        text = str(value).strip()
        if text.lower() == CREATE_NEW_KEYWORD:
            resolutions[imported_id] = CreateNew()
            continue
        try:
            resolutions[imported_id] = LinkToExisting(target_id=UUID(text))
        except ValueError as e:
            raise ValueError(
                f"Invalid resolution for {key} in {path}: expected "
                f"'{CREATE_NEW_KEYWORD}' or a member ID, got {value!r}"
            ) from e

    return resolutions


def dump_resolutions(resolutions: Mapping[UUID, Resolution]) -> dict[str, str]:
    """Resolution mapping in the YAML file's plain form."""
    return {
        str(imported_id): (
            str(resolution.target_id)
            if isinstance(resolution, LinkToExisting)
            else CREATE_NEW_KEYWORD
        )
        for imported_id, resolution in resolutions.items()
    }


def write_resolution_template(conflicts: Iterable[Conflict], path: Path) -> None:
    """
    Write a resolution file that links every conflict to its existing match.

    Users edit the values to ``create_new`` where the people differ.
    """
    resolutions = {
        c.imported_member_id: LinkToExisting(target_id=c.existing_friend.member_id)
        for c in conflicts
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write("# imported member ID: create_new | <existing member ID>\n")
        yaml.safe_dump(dump_resolutions(resolutions), f, default_flow_style=False, sort_keys=False)
