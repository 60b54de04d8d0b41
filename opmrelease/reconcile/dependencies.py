"""Gating a release on the readiness of the releases it depends on."""

from __future__ import annotations

from dataclasses import dataclass, field

from opmrelease.source.resolve import (
    CONDITION_TRUE,
    READY_CONDITION,
    Client,
    Condition,
    ObjectNotFoundError,
    find_status_condition,
)

RELEASE_KIND = "Release"


@dataclass(frozen=True)
class DependencyReference:
    """A reference to another release; an empty namespace means the dependent's."""

    name: str
    namespace: str = ""


@dataclass
class Release:
    """The parts of a release that dependency checks look at."""

    name: str
    namespace: str
    depends_on: list[DependencyReference] = field(default_factory=list)
    conditions: list[Condition] = field(default_factory=list)
    kind: str = RELEASE_KIND


class DependencyError(Exception):
    """A dependency cannot be checked: it is cross-namespace or lookup failed."""


def check_depends_on(client: Client, release: Release) -> str | None:
    """Return the first dependency that blocks ``release``, or None.

    A blocker is ``namespace/name`` for a release that is not Ready=True, with
    `` (not found)`` appended when it does not exist. Raises DependencyError
    for cross-namespace references and for lookup failures other than a
    missing object.
    """
    ns = release.namespace
    for dep in release.depends_on or ():
        if dep.namespace and dep.namespace != ns:
            raise DependencyError(
                f"dependency {dep.namespace}/{dep.name}: "
                "cross-namespace dependencies are not supported"
            )
        try:
            other = client.get(RELEASE_KIND, ns, dep.name)
        except ObjectNotFoundError:
            return f"{ns}/{dep.name} (not found)"
        except Exception as exc:
            raise DependencyError(f"getting dependency {ns}/{dep.name}: {exc}") from exc

        ready = find_status_condition(other.conditions, READY_CONDITION)
        if ready is None or ready.status != CONDITION_TRUE:
            return f"{ns}/{dep.name}"
    return None