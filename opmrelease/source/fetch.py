"""Downloading, verifying and unpacking source artifacts."""

from __future__ import annotations

import enum
import hashlib
import http.client
import os
import tempfile
import urllib.error
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from opmrelease.source.extract import ExtractionError, extract_tar_gz, extract_zip
from opmrelease.source.validate import validate_cue_module

MAX_ARTIFACT_SIZE = 64 << 20

_CHUNK_SIZE = 64 * 1024


class ArchiveFormat(enum.IntEnum):
    """Encoding of a source artifact."""

    ZIP = 0
    TAR_GZ = 1


@dataclass
class FetchOptions:
    """How a fetched artifact is unpacked and checked.

    ``skip_root_cue_module_validation`` turns off the check that
    ``cue.mod/module.cue`` exists at the destination root.
    """

    format: ArchiveFormat = ArchiveFormat.ZIP
    skip_root_cue_module_validation: bool = False


class FetchError(Exception):
    """An artifact could not be downloaded, verified or extracted."""


def format_for_kind(kind: str) -> ArchiveFormat:
    """Return the archive format a source kind delivers to release reconciles.

    Every supported kind (OCIRepository, GitRepository, Bucket) produces tar.gz.
    """
    return ArchiveFormat.TAR_GZ


@dataclass
class ArtifactFetcher:
    """Downloads artifacts over HTTP and extracts them as zip or tar.gz.

    ``opener`` defaults to a plain urllib opener; ``max_size`` of zero means
    MAX_ARTIFACT_SIZE.
    """

    opener: urllib.request.OpenerDirector | None = None
    max_size: int = 0
    timeout: float | None = None

    def fetch(
        self,
        artifact_url: str,
        artifact_digest: str,
        directory: str | os.PathLike[str],
        options: FetchOptions | None = None,
    ) -> None:
        """Download ``artifact_url``, check its SHA-256 and extract into ``directory``."""
        options = options or FetchOptions()
        opener = self.opener or urllib.request.build_opener()
        max_size = self.max_size or MAX_ARTIFACT_SIZE

        try:
            request = urllib.request.Request(artifact_url, method="GET")
        except ValueError as exc:
            raise FetchError(f"creating request: {exc}") from exc

        try:
            response = opener.open(request, timeout=self.timeout)
        except urllib.error.HTTPError as exc:
            exc.close()
            raise FetchError(f"downloading artifact: status {exc.code}") from None
        except (OSError, http.client.HTTPException) as exc:
            raise FetchError(f"downloading artifact: {exc}") from exc

        with response:
            if response.status != 200:
                raise FetchError(f"downloading artifact: status {response.status}")

            fd, tmp_name = tempfile.mkstemp(prefix="artifact-")
            tmp_path = Path(tmp_name)
            try:
                with os.fdopen(fd, "wb") as tmp:
                    written, digest = _copy_limited(response, tmp, max_size + 1)
                if written > max_size:
                    raise FetchError(f"artifact size exceeds limit of {max_size} bytes")
                if digest != artifact_digest:
                    raise FetchError(
                        f"artifact digest mismatch: got {digest}, want {artifact_digest}"
                    )
                _extract(tmp_path, directory, options.format)
            finally:
                tmp_path.unlink(missing_ok=True)

        if not options.skip_root_cue_module_validation:
            validate_cue_module(directory)


def _copy_limited(source: BinaryIO, out: BinaryIO, limit: int) -> tuple[int, str]:
    hasher = hashlib.sha256()
    written = 0
    try:
        while written < limit:
            chunk = source.read(min(_CHUNK_SIZE, limit - written))
            if not chunk:
                break
            hasher.update(chunk)
            out.write(chunk)
            written += len(chunk)
    except (OSError, http.client.HTTPException) as exc:
        raise FetchError(f"downloading artifact: {exc}") from exc
    return written, f"sha256:{hasher.hexdigest()}"


def _extract(archive: Path, directory: str | os.PathLike[str], fmt: int) -> None:
    if fmt == ArchiveFormat.ZIP:
        extractor = extract_zip
    elif fmt == ArchiveFormat.TAR_GZ:
        extractor = extract_tar_gz
    else:
        raise FetchError(f"unknown archive format: {int(fmt)}")
    try:
        extractor(archive, directory)
    except ExtractionError as exc:
        raise FetchError(f"extracting artifact: {exc}") from exc