# opmrelease

Helpers for turning a release source into a local CUE package directory.
A source object is looked up and checked for readiness. Its artifact is
downloaded, checked against its SHA-256 digest and unpacked. The release
package path inside the unpacked tree is then located, and the release's
dependencies are checked.

The package uses only the standard library.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Source resolution (`opmrelease.source.resolve`)

`resolve(client, source_ref, release_namespace)` takes a `SourceReference`,
which holds a `kind`, a `name` and an optional `namespace`. It looks the
object up through `client.get(kind, namespace, name)` and returns an
`ArtifactRef` (from `opmrelease.source.artifact`), which holds the `kind`,
`url`, `revision` and `digest`. When the reference has no namespace, the
lookup uses `release_namespace`.

The supported kinds are `OCIRepository`, `GitRepository` and `Bucket`.
`resolve` raises these errors:

- `UnsupportedSourceKindError` when the kind is not one of the three above.
  This check happens before any lookup.
- `SourceNotFoundError` when the client raises `ObjectNotFoundError`.
- `SourceNotReadyError` when there is no `Ready` condition with status
  `"True"`, or when the object has no artifact.

All three errors derive from `SourceError` and are defined in
`opmrelease.source.validate`.

`Client` is an in-memory store of `SourceObject` values, keyed by kind,
namespace and name. Each `SourceObject` carries a list of `Condition` and an
optional `Artifact`. To read objects from another backend, subclass `Client`,
override `get`, and raise `ObjectNotFoundError` for missing objects.

`find_status_condition(conditions, condition_type)` returns the first
condition of the given type, or `None`.

```python
from opmrelease.source.resolve import (
    Artifact, Client, Condition, SourceObject, SourceReference, resolve,
)

client = Client([
    SourceObject(
        kind="OCIRepository", name="my-repo", namespace="default",
        conditions=[Condition(type="Ready", status="True")],
        artifact=Artifact(url="http://localhost/artifact.tar.gz",
                          revision="v0.1.0@sha256:abc123",
                          digest="sha256:abc123"),
    ),
])
ref = resolve(client, SourceReference(kind="OCIRepository", name="my-repo"), "default")
```

## Fetching artifacts (`opmrelease.source.fetch`)

```python
from opmrelease.source.fetch import ArtifactFetcher, FetchOptions, ArchiveFormat

fetcher = ArtifactFetcher()
fetcher.fetch(ref.url, ref.digest, "/tmp/out",
              FetchOptions(format=ArchiveFormat.TAR_GZ,
                           skip_root_cue_module_validation=True))
```

`ArtifactFetcher` takes three optional fields:

- `opener`: a `urllib.request.OpenerDirector`. A plain opener is built when
  none is given.
- `max_size`: a size limit in bytes. Zero means `MAX_ARTIFACT_SIZE`, which
  is 64 MiB.
- `timeout`: passed to the opener.

`fetch` raises `FetchError` in these cases:

- The server answers with a status other than 200.
- The download exceeds the size limit.
- The computed `sha256:<hex>` digest differs from the expected one.
- Extraction fails.

`FetchOptions.format` defaults to `ArchiveFormat.ZIP`. Unless
`skip_root_cue_module_validation` is set, `fetch` then calls
`validate_cue_module` on the directory.

`format_for_kind(kind)` returns `ArchiveFormat.TAR_GZ` for every kind.

## CUE module check (`opmrelease.source.validate`)

`validate_cue_module(directory)` requires a `cue.mod` directory that holds a
non-empty `module.cue`, and returns the path of that file. It raises
`MissingCUEModuleError` when `cue.mod` is missing or is not a directory, and
when `module.cue` is missing or empty.

## Extraction (`opmrelease.source.extract`)

`extract_zip(zip_path, dest_dir)` and `extract_tar_gz(tar_path, dest_dir)`
unpack an archive into a directory. Both reject absolute paths and entries
that climb out of the destination. Both reject archives with more than
10,000 entries (`MAX_ZIP_FILES`, `MAX_TAR_FILES`).

For tar archives:

- Only regular files, directories and symlinks are written. Other entry
  types are skipped.
- A symlink must point inside the destination.
- File modes are kept, masked to `0o777`.

Both functions raise `ExtractionError`.

## Reconcile helpers (`opmrelease.reconcile`)

- `paths.resolve_package_path(root, rel_path)` cleans `rel_path` as if it
  were rooted and joins it onto `root`. It requires the target to be a
  directory that holds a `release.cue`, and returns the target path. A
  directory without `release.cue` raises `ReleaseFileMissingError`. A
  traversal, a missing path or a non-directory raises `ReleasePathError`.
- `paths.is_resolution_error_msg(error)` tells whether an error's message
  mentions loading a synthesized release, loading a release package, or
  resolving.
- `dependencies.check_depends_on(client, release)` walks
  `release.depends_on` in order, looking at each `DependencyReference`. It
  returns `None` when every dependency is a release with `Ready=True`.
  Otherwise it returns the first blocker:
  - `namespace/name` for a release that is not ready.
  - `namespace/name (not found)` for a release that does not exist.

  It raises `DependencyError` in two cases:
  - a dependency names a different namespace;
  - a lookup fails for a reason other than a missing object.

## What this package does not do

This package does not run a reconcile loop. In particular, it does not:

- talk to a cluster API; `Client` is an in-memory store;
- evaluate or render CUE packages;
- apply or prune resources;
- record status, events or history.

It has no command-line entry point.