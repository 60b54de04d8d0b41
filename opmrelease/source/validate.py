"""Source errors and the CUE module layout check."""

from __future__ import annotations

import os
import stat
from pathlib import Path

_MISSING_CUE_MODULE = "artifact does not contain a cue module"


class SourceError(Exception):
    """Base class for errors raised while resolving or fetching a source."""


class SourceNotFoundError(SourceError):
    """The referenced source object does not exist."""


class SourceNotReadyError(SourceError):
    """The source exists but is not ready or has no artifact."""


class UnsupportedSourceKindError(SourceError):
    """The source reference kind is not a supported source kind."""


class MissingCUEModuleError(SourceError):
    """The fetched artifact does not contain a CUE module."""


def validate_cue_module(directory: str | os.PathLike[str]) -> Path:
    """Check that ``directory`` holds a non-empty ``cue.mod/module.cue``.

    Returns the path of ``module.cue``; raises MissingCUEModuleError when the
    layout is absent or incomplete.
    """
    mod_dir = Path(directory) / "cue.mod"
    try:
        mod_info = mod_dir.stat()
    except FileNotFoundError as exc:
        raise MissingCUEModuleError(f"cue.mod directory missing: {_MISSING_CUE_MODULE}") from exc
    except OSError as exc:
        raise SourceError(f"checking cue.mod: {exc}") from exc
    if not stat.S_ISDIR(mod_info.st_mode):
        raise MissingCUEModuleError(f"cue.mod is not a directory: {_MISSING_CUE_MODULE}")

    module_cue = mod_dir / "module.cue"
    try:
        file_info = module_cue.stat()
    except FileNotFoundError as exc:
        raise MissingCUEModuleError(f"cue.mod/module.cue missing: {_MISSING_CUE_MODULE}") from exc
    except OSError as exc:
        raise SourceError(f"checking cue.mod/module.cue: {exc}") from exc
    if file_info.st_size == 0:
        raise MissingCUEModuleError(f"cue.mod/module.cue is empty: {_MISSING_CUE_MODULE}")

    return module_cue