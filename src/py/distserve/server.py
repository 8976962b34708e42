import asyncio
import errno
import socket
import threading
from dataclasses import dataclass
from signal import SIGINT, SIGTERM
from typing import Any, Awaitable, Callable, NamedTuple, Protocol

from .config import HOST, LOG_LEVEL, LOG_REQUESTS, PORT, ROOT
from .files import FileService
from .http.model import (
	HTTPBodyWriter,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestError,
	HTTPResponse,
)
from .http.parser import HTTPParser
from .utils.limits import LimitType, unlimit
from .utils.logging import (
	LogLevel,
	debug,
	error,
	event,
	exception,
	info,
	logged,
	setLevel,
	warning,
)


class Handler(Protocol):
	"""Anything that turns a request into a response, either directly or
	through an awaitable."""

	def handle(
		self, request: HTTPRequest
	) -> HTTPResponse | Awaitable[HTTPResponse]: ...


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)
		else:
			warning("Event loop error", Message=context.get("message"))


class ServerOptions(NamedTuple):
	host: str = "0.0.0.0"  # nosec: B104
	port: int = 3080
	backlog: int = 10_000
	# This is the polling timeout for accepting new requests, it's how
	# often we check the `condition` and the state.
	polling: float = 1.0
	readsize: int = 4_096
	# Idle connections are closed after that many seconds.
	keepalive: float = 60.0
	logRequests: bool = True
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True
	# Number of following ports to try when the port is taken
	fallback: int = 0


OPTIONS: ServerOptions = ServerOptions()

SERVER_BAD_REQUEST: bytes = (
	b"HTTP/1.1 400 Bad Request\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 11\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Bad Request"
)


class AIOSocketBodyWriter(HTTPBodyWriter):
	"""Specialized body writer to work with AIO sockets."""

	__slots__ = ["client", "loop"]

	def __init__(
		self,
		client: "socket.socket",
		loop: asyncio.AbstractEventLoop,
	) -> None:
		super().__init__()
		self.client: socket.socket = client
		self.loop: asyncio.AbstractEventLoop = loop

	async def _writeBytes(self, chunk: bytes) -> bool:
		if chunk:
			await self.loop.sock_sendall(self.client, chunk)
		return True


class AIOSocketServer:
	"""AsyncIO backend using sockets directly."""

	@classmethod
	async def OnRequest(
		cls,
		handler: Handler,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> None:
		"""Processes the requests coming through the client socket, until
		the client closes, times out or asks not to be kept alive."""
		size: int = options.readsize
		buffer = bytearray(size)
		keep_alive: bool = True
		status: HTTPProcessingStatus = HTTPProcessingStatus.Processing
		read_count: int = 0
		req_count: int = 0
		res_count: int = 0
		try:
			parser: HTTPParser = HTTPParser()
			writer: AIOSocketBodyWriter = AIOSocketBodyWriter(client, loop)
			while keep_alive:
				try:
					n = await asyncio.wait_for(
						loop.sock_recv_into(client, buffer),
						timeout=options.keepalive,
					)
				except asyncio.TimeoutError:
					status = HTTPProcessingStatus.Timeout
					break
				if not n:
					# A no-data means a close
					status = HTTPProcessingStatus.NoData
					break
				read_count += n
				# NOTE: With HTTP Pipelining, we may receive more than one
				# request in the same payload.
				for atom in parser.feed(bytes(buffer[:n])):
					if atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request", Client=f"{id(client):x}")
						await loop.sock_sendall(client, SERVER_BAD_REQUEST)
						status = atom
						keep_alive = False
						break
					elif isinstance(atom, HTTPRequest):
						req_count += 1
						if options.logRequests:
							event(atom.method, atom.path)
						if not atom.keepAlive:
							keep_alive = False
						res = await cls.SendResponse(atom, handler, writer)
						if res is None:
							keep_alive = False
							break
						res_count += 1
						if res.shouldClose:
							keep_alive = False
						if not keep_alive:
							break

			if status is HTTPProcessingStatus.NoData and req_count != res_count:
				warning(
					"Client closed before all responses were sent",
					Requests=req_count,
					Responses=res_count,
				)
			elif status is HTTPProcessingStatus.NoData and not read_count:
				# Regular connection close
				pass
			elif status is HTTPProcessingStatus.Timeout and not req_count:
				warning("Client timed out", ReadCount=read_count)
			else:
				logged(LogLevel.Debug) and debug(
					"Connection done",
					Status=status.name,
					Requests=req_count,
					Responses=res_count,
				)
		except ConnectionError as e:
			logged(LogLevel.Debug) and debug("Client connection lost", Error=str(e))
		except Exception as e:
			exception(e)
		finally:
			client.close()

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		handler: Handler,
		writer: HTTPBodyWriter,
	) -> HTTPResponse | None:
		"""Processes the request with the handler and sends the response using
		the given writer. Returns `None` when the response could not be sent."""
		req: HTTPRequest = request
		res: HTTPResponse
		try:
			r = handler.handle(req)
			res = r if isinstance(r, HTTPResponse) else await r
		except HTTPRequestError as e:
			res = req.error(
				e.status or 500, e.message, contentType=e.contentType or "text/plain"
			)
		except Exception as e:
			exception(e, f"Handler failed on {req.method} {req.path}")
			res = req.fail("Internal server error")
		if not req.keepAlive:
			res.setHeader("Connection", "close")
		try:
			await writer.write(res.head())
			# HEAD responses have the headers of a GET, without the body
			if req.method != "HEAD":
				await writer.write(res.body)
		except ConnectionError:
			# Client did an early close
			logged(LogLevel.Debug) and debug(
				"Client closed before the response was sent",
				Method=req.method,
				Path=req.path,
			)
			return None
		return res

	@staticmethod
	def Bind(options: ServerOptions) -> socket.socket:
		"""Creates the listening socket, trying the `fallback` following
		ports when the port is already taken."""
		server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		server.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
		try:
			server.bind((options.host, options.port))
		except OSError as e:
			bound: bool = False
			for p in range(options.port + 1, options.port + 1 + options.fallback):
				try:
					server.bind((options.host, p))
				except OSError:
					continue
				info(f"Found alternate available port: {p}")
				bound = True
				break
			if not bound:
				server.close()
				error(
					f"Unable to bind to {options.host}:{options.port}, aborting.",
					"HOSTPORTERR",
				)
				raise e
		# The argument is the backlog of connections that will be accepted before
		# they are refused.
		server.listen(options.backlog)
		# This is what we need to use it with asyncio
		server.setblocking(False)
		return server

	@classmethod
	async def Serve(
		cls,
		handler: Handler,
		options: ServerOptions = OPTIONS,
		*,
		server: socket.socket | None = None,
	) -> None:
		"""Main server coroutine, accepting connections until stopped by
		a signal or by the `condition` option."""
		if server is None:
			server = cls.Bind(options)
		port: int = server.getsockname()[1]
		loop = asyncio.get_running_loop()
		state = ServerState()
		# Signal handlers can only be set from the main thread.
		signals: bool = (
			options.stopSignals
			and threading.current_thread() is threading.main_thread()
		)
		if signals:
			loop.add_signal_handler(SIGINT, state.stop)
			loop.add_signal_handler(SIGTERM, state.stop)
		loop.set_exception_handler(state.onException)

		info("Server is running", icon="🚀", Host=options.host, Port=port)

		tasks: set[asyncio.Task[None]] = set()
		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				try:
					client, _ = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling or 1.0
					)
				except asyncio.TimeoutError:
					continue
				except OSError as e:
					if e.errno == errno.EMFILE:
						# Too many open files, we wait for some to be closed
						await asyncio.sleep(0.1)
					else:
						exception(e)
					continue
				task = loop.create_task(
					cls.OnRequest(handler, client, loop=loop, options=options)
				)
				tasks.add(task)
				task.add_done_callback(tasks.discard)
		finally:
			if signals:
				loop.remove_signal_handler(SIGINT)
				loop.remove_signal_handler(SIGTERM)
			server.close()
			for task in tasks:
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)


def run(
	handler: Handler | None = None,
	*,
	root: str = ROOT,
	host: str = HOST,
	port: int = PORT,
	backlog: int = OPTIONS.backlog,
	condition: Callable[[], bool] | None = None,
	polling: float = OPTIONS.polling,
	logRequests: bool = LOG_REQUESTS,
	keepalive: float = OPTIONS.keepalive,
	fallback: int = OPTIONS.fallback,
) -> None:
	"""High level function to run the server, serving the files under
	`root` unless another handler is given."""
	setLevel(LOG_LEVEL)
	unlimit(LimitType.Files)
	options = ServerOptions(
		host=host,
		port=port,
		backlog=backlog,
		condition=condition,
		polling=polling,
		logRequests=logRequests,
		keepalive=keepalive,
		fallback=fallback,
	)
	try:
		asyncio.run(AIOSocketServer.Serve(handler or FileService(root), options))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
