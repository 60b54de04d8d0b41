"""Safe extraction of zip and tar.gz artifacts."""

from __future__ import annotations

import os
import shutil
import tarfile
import zipfile
import zlib

MAX_ZIP_FILES = 10000
MAX_TAR_FILES = 10000

_TAR_READ_ERRORS = (tarfile.TarError, OSError, EOFError, zlib.error)


class ExtractionError(Exception):
    """An archive could not be extracted safely."""


def _is_traversal(name: str) -> bool:
    return os.path.isabs(name) or name.startswith("..")


def _makedirs(path: str, what: str) -> None:
    try:
        os.makedirs(path, mode=0o755, exist_ok=True)
    except OSError as exc:
        raise ExtractionError(f"{what} {path}: {exc}") from exc


def extract_zip(zip_path: str | os.PathLike[str], dest_dir: str | os.PathLike[str]) -> None:
    """Extract the zip archive at ``zip_path`` into ``dest_dir``.

    Entries that would land outside ``dest_dir`` are rejected, as are archives
    with more than MAX_ZIP_FILES entries.
    """
    dest = os.fspath(dest_dir)
    try:
        archive = zipfile.ZipFile(zip_path)
    except (zipfile.BadZipFile, OSError) as exc:
        raise ExtractionError(f"opening zip archive: {exc}") from exc

    with archive:
        entries = archive.infolist()
        if len(entries) > MAX_ZIP_FILES:
            raise ExtractionError(
                f"zip archive contains {len(entries)} files, exceeds limit of {MAX_ZIP_FILES}"
            )
        for info in entries:
            name = os.path.normpath(info.filename)
            if _is_traversal(name):
                raise ExtractionError(f"zip entry {info.filename!r} contains path traversal")
            target = os.path.join(dest, name)
            if info.is_dir():
                _makedirs(target, "creating directory")
                continue
            _makedirs(os.path.dirname(target), "creating parent directory for")
            try:
                with archive.open(info) as source, open(target, "wb") as out:
                    shutil.copyfileobj(source, out)
            except (zipfile.BadZipFile, OSError, zlib.error) as exc:
                raise ExtractionError(f"extracting {info.filename}: {exc}") from exc


def extract_tar_gz(tar_path: str | os.PathLike[str], dest_dir: str | os.PathLike[str]) -> None:
    """Extract the gzipped tar archive at ``tar_path`` into ``dest_dir``.

    Only regular files, directories and symlinks are written; other entry
    types are skipped. Traversing names and symlinks pointing outside
    ``dest_dir`` are rejected, as are archives with more than MAX_TAR_FILES
    entries.
    """
    dest = os.fspath(dest_dir)
    clean_dest = os.path.normpath(dest)
    try:
        archive = tarfile.open(tar_path, mode="r:gz")
    except _TAR_READ_ERRORS as exc:
        raise ExtractionError(f"opening tar.gz archive: {exc}") from exc

    with archive:
        count = 0
        while True:
            try:
                member = archive.next()
            except _TAR_READ_ERRORS as exc:
                raise ExtractionError(f"reading tar entry: {exc}") from exc
            if member is None:
                break

            count += 1
            if count > MAX_TAR_FILES:
                raise ExtractionError(f"tar archive contains more than {MAX_TAR_FILES} files")

            name = os.path.normpath(member.name)
            if _is_traversal(name):
                raise ExtractionError(f"tar entry {member.name!r} contains path traversal")
            target = os.path.join(dest, name)

            if member.isdir():
                _makedirs(target, "creating directory")
            elif member.isreg():
                _makedirs(os.path.dirname(target), "creating parent directory for")
                _write_tar_file(archive, member, target)
            elif member.issym():
                _makedirs(os.path.dirname(target), "creating parent directory for")
                link_target = os.path.normpath(
                    os.path.dirname(target) + os.sep + member.linkname
                )
                if not link_target.startswith(clean_dest + os.sep) and link_target != clean_dest:
                    raise ExtractionError(f"tar symlink {member.name!r} escapes destination")
                try:
                    os.symlink(member.linkname, target)
                except OSError as exc:
                    raise ExtractionError(f"creating symlink {target}: {exc}") from exc


def _write_tar_file(archive: tarfile.TarFile, member: tarfile.TarInfo, target: str) -> None:
    try:
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, member.mode & 0o777)
    except OSError as exc:
        raise ExtractionError(f"creating file {target}: {exc}") from exc
    with os.fdopen(fd, "wb") as out:
        try:
            source = archive.extractfile(member)
            if source is not None:
                with source:
                    shutil.copyfileobj(source, out)
        except _TAR_READ_ERRORS as exc:
            raise ExtractionError(f"extracting {target}: {exc}") from exc