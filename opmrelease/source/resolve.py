"""Looking up source objects and reading their artifact metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from opmrelease.source.artifact import ArtifactRef
from opmrelease.source.validate import (
    SourceNotFoundError,
    SourceNotReadyError,
    UnsupportedSourceKindError,
)

SOURCE_KIND_OCI_REPOSITORY = "OCIRepository"
SOURCE_KIND_GIT_REPOSITORY = "GitRepository"
SOURCE_KIND_BUCKET = "Bucket"

SUPPORTED_SOURCE_KINDS = frozenset(
    {SOURCE_KIND_OCI_REPOSITORY, SOURCE_KIND_GIT_REPOSITORY, SOURCE_KIND_BUCKET}
)

READY_CONDITION = "Ready"
CONDITION_TRUE = "True"


@dataclass
class Condition:
    """A status condition; ``status`` is "True", "False" or "Unknown"."""

    type: str
    status: str
    reason: str = ""
    message: str = ""


@dataclass
class Artifact:
    """The artifact a source object currently advertises."""

    url: str
    revision: str
    digest: str
    path: str = ""


@dataclass
class SourceObject:
    """A source object with readiness conditions and an optional artifact."""

    kind: str
    name: str
    namespace: str
    conditions: list[Condition] = field(default_factory=list)
    artifact: Artifact | None = None


@dataclass(frozen=True)
class SourceReference:
    """A reference to a source object; an empty namespace means the release's."""

    kind: str
    name: str
    namespace: str = ""


class ObjectNotFoundError(LookupError):
    """The requested object does not exist."""


class Client:
    """In-memory object store keyed by kind, namespace and name.

    Other backends override ``get`` and raise ObjectNotFoundError for
    missing objects.
    """

    def __init__(self, objects: Iterable[SourceObject] = ()) -> None:
        self._objects = {(obj.kind, obj.namespace, obj.name): obj for obj in objects}

    def get(self, kind: str, namespace: str, name: str) -> SourceObject:
        """Return the object, or raise ObjectNotFoundError."""
        try:
            return self._objects[(kind, namespace, name)]
        except KeyError:
            raise ObjectNotFoundError(f'{kind} "{namespace}/{name}" not found') from None


def find_status_condition(conditions: Iterable[Condition], condition_type: str) -> Condition | None:
    """Return the first condition of the given type, or None."""
    return next((c for c in conditions if c.type == condition_type), None)


def resolve(client: Client, source_ref: SourceReference, release_namespace: str) -> ArtifactRef:
    """Look up the referenced source, require it to be ready, return its artifact.

    The source is looked up in ``release_namespace`` unless the reference
    names its own namespace.
    """
    ns = source_ref.namespace or release_namespace
    kind, name = source_ref.kind, source_ref.name

    if kind not in SUPPORTED_SOURCE_KINDS:
        raise UnsupportedSourceKindError(
            f'{ns}/{name}: source kind "{kind}": unsupported source kind'
        )

    try:
        obj = client.get(kind, ns, name)
    except ObjectNotFoundError:
        raise SourceNotFoundError(f"{kind} {ns}/{name}: source not found") from None

    ready = find_status_condition(obj.conditions, READY_CONDITION)
    if ready is None or ready.status != CONDITION_TRUE:
        raise SourceNotReadyError(f"{kind} {ns}/{name}: source not ready")

    if obj.artifact is None:
        raise SourceNotReadyError(f"{kind} {ns}/{name} has no artifact: source not ready")

    return ArtifactRef(
        kind=kind,
        url=obj.artifact.url,
        revision=obj.artifact.revision,
        digest=obj.artifact.digest,
    )