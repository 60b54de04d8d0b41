"""Locating the release package inside an extracted artifact."""

from __future__ import annotations

import json
import os
import posixpath
import stat
from pathlib import Path

RELEASE_FILE = "release.cue"

_RESOLUTION_MARKERS = (
    "loading synthesized release",
    "loading release package",
    "resolving",
)


class ReleasePathError(Exception):
    """The release path inside an artifact is unusable."""


class ReleaseFileMissingError(ReleasePathError):
    """The target directory exists but holds no release.cue."""


def _quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def resolve_package_path(root: str | os.PathLike[str], rel_path: str) -> Path:
    """Join ``rel_path`` onto ``root`` safely and require a release.cue there.

    The relative path is cleaned as if rooted, so it can never climb above
    ``root``. Raises ReleaseFileMissingError when the directory exists but has
    no release.cue, and ReleasePathError for every other problem.
    """
    cleaned = posixpath.normpath("/" + rel_path)
    if ".." in cleaned:
        raise ReleasePathError(f"path {_quote(rel_path)} contains traversal")

    relative = cleaned.lstrip("/")
    target = Path(root) / relative if relative else Path(root)

    try:
        info = target.stat()
    except FileNotFoundError:
        raise ReleasePathError(f"path {_quote(rel_path)} does not exist in artifact") from None
    except OSError as exc:
        raise ReleasePathError(f"stat {_quote(rel_path)}: {exc}") from exc
    if not stat.S_ISDIR(info.st_mode):
        raise ReleasePathError(f"path {_quote(rel_path)} is not a directory")

    try:
        (target / RELEASE_FILE).stat()
    except FileNotFoundError:
        raise ReleaseFileMissingError(
            f"{RELEASE_FILE} not found at {_quote(rel_path)}"
        ) from None
    except OSError as exc:
        raise ReleasePathError(f"stat {RELEASE_FILE}: {exc}") from exc

    return target


def is_resolution_error_msg(error: BaseException | str) -> bool:
    """Tell whether an error message points at a package load or resolution failure."""
    message = str(error)
    return any(marker in message for marker in _RESOLUTION_MARKERS)