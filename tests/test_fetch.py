import contextlib
import hashlib
import tarfile
import threading
import urllib.request
import zipfile
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from opmrelease.source.fetch import (
    ArchiveFormat,
    ArtifactFetcher,
    FetchError,
    FetchOptions,
    format_for_kind,
)
from opmrelease.source.validate import MissingCUEModuleError, validate_cue_module

MODULE_CUE = 'module: "opmodel.dev/experiments/minimal@v0"\nlanguage: version: "v0.16.0"\n'
MAIN_CUE = 'package minimal\n\nmessage: "hello from native cue oci"\n'
ZERO_DIGEST = "sha256:" + "0" * 64


def _fixture_dir(root: Path) -> Path:
    module = root / "minimal-module"
    (module / "cue.mod").mkdir(parents=True)
    (module / "cue.mod" / "module.cue").write_text(MODULE_CUE)
    (module / "main.cue").write_text(MAIN_CUE)
    return module


def _zip_dir(src: Path, dest: Path) -> bytes:
    with zipfile.ZipFile(dest, "w") as zf:
        for path in sorted(src.rglob("*")):
            rel = path.relative_to(src).as_posix()
            if path.is_dir():
                zf.writestr(rel + "/", b"")
            else:
                zf.write(path, rel)
    return dest.read_bytes()


def _tar_gz_dir(src: Path, dest: Path) -> bytes:
    with tarfile.open(dest, "w:gz") as tf:
        for path in sorted(src.rglob("*")):
            tf.add(path, arcname=path.relative_to(src).as_posix(), recursive=False)
    return dest.read_bytes()


def _digest(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()


@contextlib.contextmanager
def serve(body: bytes = b"", status: int = 200):
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            self.send_response(status)
            self.send_header("Content-Type", "application/octet-stream")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            try:
                self.wfile.write(body)
            except OSError:
                pass

        def log_message(self, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


def make_fetcher(**kwargs) -> ArtifactFetcher:
    opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))
    return ArtifactFetcher(opener=opener, **kwargs)


@pytest.fixture(scope="module")
def zip_bytes(tmp_path_factory) -> bytes:
    root = tmp_path_factory.mktemp("zipfixture")
    return _zip_dir(_fixture_dir(root), root / "module.zip")


@pytest.fixture(scope="module")
def tar_bytes(tmp_path_factory) -> bytes:
    root = tmp_path_factory.mktemp("tarfixture")
    return _tar_gz_dir(_fixture_dir(root), root / "module.tar.gz")


def test_digest_match_succeeds(tmp_path, zip_bytes):
    with serve(zip_bytes) as url:
        make_fetcher().fetch(url + "/artifact.tar.gz", _digest(zip_bytes), tmp_path, FetchOptions())
    assert (tmp_path / "cue.mod" / "module.cue").is_file()
    assert (tmp_path / "main.cue").is_file()


def test_fetch_integration_contents(tmp_path, zip_bytes):
    with serve(zip_bytes) as url:
        make_fetcher().fetch(url + "/artifact.tar.gz", _digest(zip_bytes), tmp_path)
    assert "opmodel.dev/experiments/minimal" in (tmp_path / "cue.mod" / "module.cue").read_text()
    assert "hello from native cue oci" in (tmp_path / "main.cue").read_text()
    assert validate_cue_module(tmp_path) == tmp_path / "cue.mod" / "module.cue"


def test_digest_mismatch_raises(tmp_path, zip_bytes):
    with serve(zip_bytes) as url:
        with pytest.raises(FetchError, match="digest mismatch"):
            make_fetcher().fetch(url, ZERO_DIGEST, tmp_path, FetchOptions())
    assert list(tmp_path.iterdir()) == []


def test_non_200_response_raises(tmp_path, zip_bytes):
    with serve(status=404) as url:
        with pytest.raises(FetchError, match="404"):
            make_fetcher().fetch(url, _digest(zip_bytes), tmp_path, FetchOptions())


def test_size_limit_exceeded_raises(tmp_path, zip_bytes):
    with serve(zip_bytes) as url:
        with pytest.raises(FetchError, match="exceeds limit"):
            make_fetcher(max_size=10).fetch(url, _digest(zip_bytes), tmp_path, FetchOptions())


def test_tar_gz_format_extracts(tmp_path, tar_bytes):
    with serve(tar_bytes) as url:
        make_fetcher().fetch(
            url + "/artifact.tar.gz",
            _digest(tar_bytes),
            tmp_path,
            FetchOptions(format=ArchiveFormat.TAR_GZ),
        )
    assert (tmp_path / "cue.mod" / "module.cue").read_text() == MODULE_CUE


def _bare_tar(tmp_path: Path) -> bytes:
    src = tmp_path / "src"
    (src / "releases" / "prod").mkdir(parents=True)
    (src / "releases" / "prod" / "release.cue").write_text("package release\n")
    return _tar_gz_dir(src, tmp_path / "bare.tar.gz")


def test_skip_root_cue_module_validation(tmp_path):
    data = _bare_tar(tmp_path)
    dest = tmp_path / "dest"
    dest.mkdir()
    with serve(data) as url:
        make_fetcher().fetch(
            url,
            _digest(data),
            dest,
            FetchOptions(format=ArchiveFormat.TAR_GZ, skip_root_cue_module_validation=True),
        )
    assert (dest / "releases" / "prod" / "release.cue").read_text() == "package release\n"


def test_root_cue_module_validated_by_default(tmp_path):
    data = _bare_tar(tmp_path)
    dest = tmp_path / "dest"
    dest.mkdir()
    with serve(data) as url:
        with pytest.raises(MissingCUEModuleError):
            make_fetcher().fetch(url, _digest(data), dest, FetchOptions(format=ArchiveFormat.TAR_GZ))


def test_zip_served_from_tar_gz_url(tmp_path, zip_bytes):
    with serve(zip_bytes) as url:
        make_fetcher().fetch(
            url + "/ocirepository/default/my-repo/sha256:abc123.tar.gz",
            _digest(zip_bytes),
            tmp_path,
            FetchOptions(),
        )
    assert (tmp_path / "cue.mod" / "module.cue").is_file()


def test_unknown_archive_format_raises(tmp_path, zip_bytes):
    with serve(zip_bytes) as url:
        with pytest.raises(FetchError, match="unknown archive format: 7"):
            make_fetcher().fetch(url, _digest(zip_bytes), tmp_path, FetchOptions(format=7))


@pytest.mark.parametrize("kind", ["OCIRepository", "GitRepository", "Bucket"])
def test_format_for_kind_is_tar_gz(kind):
    assert format_for_kind(kind) is ArchiveFormat.TAR_GZ