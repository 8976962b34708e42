import asyncio
from pathlib import Path

import pytest

from distserve.files import FileService
from distserve.http.model import HTTPRequest, HTTPRequestError, HTTPResponse
from distserve.server import AIOSocketServer, Handler, ServerOptions


def serve(handler: Handler, *payloads: bytes) -> list[bytes]:
	"""Starts a server on an ephemeral port, sends each payload on its own
	connection and returns what was received until the server closed it."""

	async def main() -> list[bytes]:
		running: list[bool] = [True]
		options = ServerOptions(
			host="127.0.0.1",
			port=0,
			polling=0.05,
			keepalive=5.0,
			logRequests=False,
			stopSignals=False,
			condition=lambda: running[0],
		)
		server = AIOSocketServer.Bind(options)
		port: int = server.getsockname()[1]
		task = asyncio.create_task(AIOSocketServer.Serve(handler, options, server=server))
		responses: list[bytes] = []
		try:
			for payload in payloads:
				reader, writer = await asyncio.open_connection("127.0.0.1", port)
				writer.write(payload)
				await writer.drain()
				responses.append(await asyncio.wait_for(reader.read(), timeout=5.0))
				writer.close()
				await writer.wait_closed()
		finally:
			running[0] = False
			await asyncio.wait_for(task, timeout=5.0)
		return responses

	return asyncio.run(main())


def split(response: bytes) -> tuple[int, dict[str, str], bytes]:
	head, _, body = response.partition(b"\r\n\r\n")
	lines = head.decode("latin-1").split("\r\n")
	status = int(lines[0].split(" ")[1])
	headers = dict(_.split(": ", 1) for _ in lines[1:])
	return status, headers, body


def get(path: str, method: str = "GET") -> bytes:
	return f"{method} {path} HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n".encode()


@pytest.fixture
def root(tmp_path: Path) -> Path:
	dist = tmp_path / "dist"
	dist.mkdir()
	(dist / "index.html").write_bytes(b"<h1>hi</h1>")
	(dist / "app.js").write_bytes(b"console.log('hi')")
	(tmp_path / "passwd").write_bytes(b"root:x:0:0")
	return dist


def test_index(root: Path) -> None:
	(res,) = serve(FileService(root), get("/"))
	status, headers, body = split(res)
	assert status == 200
	assert headers["Content-Type"] == "text/html"
	assert headers["Content-Length"] == "11"
	assert headers["Connection"] == "close"
	assert body == b"<h1>hi</h1>"


def test_script_and_query(root: Path) -> None:
	(res,) = serve(FileService(root), get("/app.js?v=12"))
	status, headers, body = split(res)
	assert status == 200
	assert headers["Content-Type"] == "text/javascript"
	assert body == b"console.log('hi')"


def test_not_found_and_traversal(root: Path) -> None:
	missing, traversal = serve(
		FileService(root), get("/missing.txt"), get("/../../passwd")
	)
	status, _, body = split(missing)
	assert status == 404
	assert b"missing.txt" in body
	status, _, body = split(traversal)
	assert status == 404
	assert b"root:x" not in body


def test_keep_alive_pipelining(root: Path) -> None:
	(res,) = serve(
		FileService(root),
		b"GET /app.js HTTP/1.1\r\nHost: localhost\r\n\r\n" + get("/index.html"),
	)
	assert res.count(b"HTTP/1.1 200 OK\r\n") == 2
	assert res.endswith(b"<h1>hi</h1>")


def test_head_has_no_body(root: Path) -> None:
	(res,) = serve(FileService(root), get("/app.js", "HEAD"))
	status, headers, body = split(res)
	assert status == 200
	assert headers["Content-Length"] == str(len(b"console.log('hi')"))
	assert body == b""


def test_malformed_request(root: Path) -> None:
	(res,) = serve(FileService(root), b"nonsense\r\n\r\n")
	status, headers, body = split(res)
	assert status == 400
	assert headers["Connection"] == "close"


class Failing:
	def handle(self, request: HTTPRequest) -> HTTPResponse:
		if request.path == "/teapot":
			raise HTTPRequestError("I'm a teapot", status=418)
		elif request.path == "/crash":
			raise RuntimeError("Handler crashed")
		return request.respond("ok", contentType="text/plain")


def test_handler_errors_do_not_stop_the_server() -> None:
	crash, teapot, ok = serve(Failing(), get("/crash"), get("/teapot"), get("/"))
	status, _, body = split(crash)
	assert status == 500
	assert body == b"Internal server error"
	status, _, body = split(teapot)
	assert status == 418
	assert body == b"I'm a teapot"
	status, _, body = split(ok)
	assert status == 200
	assert body == b"ok"


def test_concurrent_clients(root: Path) -> None:
	async def main() -> list[bytes]:
		running: list[bool] = [True]
		options = ServerOptions(
			host="127.0.0.1",
			port=0,
			polling=0.05,
			logRequests=False,
			stopSignals=False,
			condition=lambda: running[0],
		)
		server = AIOSocketServer.Bind(options)
		port: int = server.getsockname()[1]
		task = asyncio.create_task(
			AIOSocketServer.Serve(FileService(root), options, server=server)
		)

		async def fetch(path: str) -> bytes:
			reader, writer = await asyncio.open_connection("127.0.0.1", port)
			writer.write(get(path))
			await writer.drain()
			data = await asyncio.wait_for(reader.read(), timeout=5.0)
			writer.close()
			await writer.wait_closed()
			return data

		try:
			return await asyncio.gather(*(fetch("/app.js") for _ in range(10)))
		finally:
			running[0] = False
			await asyncio.wait_for(task, timeout=5.0)

	for res in asyncio.run(main()):
		assert split(res)[0] == 200


# EOF
