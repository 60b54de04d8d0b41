"""Resolved artifact metadata for a source object."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ArtifactRef:
    """Where a source's current artifact lives and what it should hash to.

    ``kind`` is the source kind (OCIRepository, GitRepository, Bucket),
    ``url`` the HTTP(S) address of the artifact, ``revision`` the source
    revision (e.g. ``v0.0.1@sha256:abc``) and ``digest`` the content digest
    (e.g. ``sha256:abc``).
    """

    kind: str
    url: str
    revision: str
    digest: str