import asyncio
import os
from pathlib import Path

import pytest

from distserve import files
from distserve.files import FileService
from distserve.http.model import HTTPHeaders, HTTPRequest, HTTPResponse


def request(path: str, method: str = "GET") -> HTTPRequest:
	return HTTPRequest(method, path, {}, HTTPHeaders({}))


def handle(service: FileService, path: str, method: str = "GET") -> HTTPResponse:
	return asyncio.run(service.handle(request(path, method)))


@pytest.fixture
def root(tmp_path: Path) -> Path:
	dist = tmp_path / "dist"
	dist.mkdir()
	(dist / "index.html").write_bytes(b"<h1>hi</h1>")
	(dist / "app.js").write_bytes(b"console.log('hi')")
	(dist / "logo.PNG").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x01")
	(dist / "data.xyz").write_bytes(b"\x00\x01\x02")
	(dist / "docs").mkdir()
	(dist / "docs" / "index.html").write_bytes(b"<p>docs</p>")
	(dist / "empty").mkdir()
	(tmp_path / "secret.txt").write_bytes(b"top secret")
	return dist


def test_root_serves_index(root: Path) -> None:
	res = handle(FileService(root), "/")
	assert res.status == 200
	assert res.getHeader("Content-Type") == "text/html"
	assert res.payload == b"<h1>hi</h1>"


def test_file_is_served_as_is(root: Path) -> None:
	res = handle(FileService(root), "/app.js")
	assert res.status == 200
	assert res.getHeader("Content-Type") == "text/javascript"
	assert res.payload == (root / "app.js").read_bytes()
	assert res.getHeader("Content-Length") == str(len(res.payload))


def test_binary_file_is_served_byte_for_byte(root: Path) -> None:
	res = handle(FileService(root), "/logo.PNG")
	assert res.status == 200
	assert res.getHeader("Content-Type") == "image/png"
	assert res.payload == b"\x89PNG\r\n\x1a\n\x00\x01"


def test_unknown_extension_is_octet_stream(root: Path) -> None:
	res = handle(FileService(root), "/data.xyz")
	assert res.status == 200
	assert res.getHeader("Content-Type") == "application/octet-stream"


def test_directory_is_same_as_its_index(root: Path) -> None:
	service = FileService(root)
	for path in ("/docs", "/docs/"):
		res = handle(service, path)
		direct = handle(service, "/docs/index.html")
		assert res.status == direct.status == 200
		assert res.payload == direct.payload == b"<p>docs</p>"
		assert res.getHeader("Content-Type") == direct.getHeader("Content-Type")


def test_missing_file_is_404(tmp_path: Path) -> None:
	service = FileService(tmp_path)
	res = handle(service, "/missing.txt")
	assert res.status == 404
	assert res.payload == f"File {tmp_path / 'missing.txt'} not found!".encode()
	assert b"missing.txt" in res.payload


def test_directory_without_index_is_500(root: Path) -> None:
	res = handle(FileService(root), "/empty")
	assert res.status == 500
	assert res.payload == b"Error getting the file."


def test_read_failure_is_500(root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
	def fail(path: Path) -> bytes:
		raise PermissionError(13, "Permission denied", str(path))

	monkeypatch.setattr(files, "readFile", fail)
	res = handle(FileService(root), "/app.js")
	assert res.status == 500
	assert res.payload == b"Error getting the file."


# The superuser reads files whatever their mode
if os.geteuid() != 0:

	def test_unreadable_file_is_500(root: Path) -> None:
		locked = root / "locked.html"
		locked.write_bytes(b"<p>locked</p>")
		locked.chmod(0)
		try:
			res = handle(FileService(root), "/locked.html")
		finally:
			locked.chmod(0o644)
		assert res.status == 500
		assert res.payload == b"Error getting the file."


def test_trailing_slash_on_file_is_404(root: Path) -> None:
	res = handle(FileService(root), "/app.js/")
	assert res.status == 404
	assert b"console.log" not in res.payload
	assert handle(FileService(root), "/docs/").status == 200


@pytest.mark.parametrize(
	"path",
	[
		"/../secret.txt",
		"/../../etc/passwd",
		"/docs/../../secret.txt",
		"/%2e%2e/secret.txt",
		"/..%2fsecret.txt",
	],
)
def test_traversal_never_leaves_root(root: Path, path: str) -> None:
	res = handle(FileService(root), path)
	assert res.status == 404
	assert b"top secret" not in res.payload
	assert str(root.parent / "secret.txt").encode() not in res.payload


def test_absolute_path_stays_in_root(root: Path) -> None:
	service = FileService(root)
	assert service.resolvePath("//etc/passwd") == root / "etc" / "passwd"
	assert handle(service, "//etc/passwd").status == 404


def test_resolve_path(root: Path) -> None:
	service = FileService(root)
	assert service.resolvePath("/") == root
	assert service.resolvePath("/docs/./index.html") == root / "docs" / "index.html"
	assert service.resolvePath("/docs/../app.js") == root / "app.js"
	assert service.resolvePath("/a%20b.txt") == root / "a b.txt"
	assert service.resolvePath("/../dist/app.js") == root / "app.js"
	assert service.resolvePath("/../secret.txt") is None
	assert service.resolvePath("/app.js%00.html") is None


def test_relative_root_is_made_absolute(
	root: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
	monkeypatch.chdir(root.parent)
	service = FileService("dist")
	assert service.root == root
	assert handle(service, "/app.js").status == 200


@pytest.mark.parametrize("method", ["GET", "POST", "DELETE", "OPTIONS"])
def test_method_has_no_effect(root: Path, method: str) -> None:
	res = handle(FileService(root), "/app.js", method)
	assert res.status == 200
	assert res.getHeader("Content-Type") == "text/javascript"


# EOF
