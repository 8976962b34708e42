from typing import ClassVar, Iterator, Literal
from urllib.parse import urlsplit

from ..utils.io import LineParser
from .model import (
	HTTPAtom,
	HTTPBodyBlob,
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
	headername,
)


def parseTarget(target: str) -> tuple[str, str]:
	"""Splits a request target into its path and query, dropping any
	fragment. Absolute-form targets (`http://host/path`) are reduced to
	their path."""
	if "://" in target:
		parts = urlsplit(target)
		return parts.path or "/", parts.query
	# NOTE: We don't use `urlsplit` here as it would take `//etc` as a host.
	path = target.split("#", 1)[0]
	path, _, query = path.partition("?")
	return path, query


def parseQuery(text: str) -> dict[str, str]:
	res: dict[str, str] = {}
	for item in text.split("&"):
		if not item:
			continue
		kv = item.split("=", 1)
		res[kv[0]] = kv[1] if len(kv) > 1 else ""
	return res


class MessageParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()

	def reset(self) -> "MessageParser":
		self.line.reset()
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[HTTPRequestLine | Literal[False] | None, int]:
		"""Returns the request line once complete, `False` when the line is
		malformed, and `None` when more data is needed."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			# Empty lines before the request line are to be ignored (RFC 9112 §2.2)
			return None, read
		try:
			ln = line.decode("ascii")
		except UnicodeDecodeError:
			return False, read
		i = ln.find(" ")
		j = ln.rfind(" ")
		protocol = ln[j + 1 :]
		if i <= 0 or i == j or not protocol.startswith("HTTP/"):
			return False, read
		path, query = parseTarget(ln[i + 1 : j].strip())
		return HTTPRequestLine(ln[:i], path, query, protocol), read

	def __str__(self) -> str:
		return "MessageParser()"


class HeadersParser:
	__slots__ = ["headers", "contentType", "contentLength", "line"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentType = None
		self.contentLength = None
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[str | Literal[False] | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns
		a value and the number of bytes read. When the value is `None`, no
		header has been extracted, when the value is `False` it's the empty
		line ending the headers, otherwise it's the name of the header that
		was added."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			return False, read
		ln: str = line.decode("latin-1")
		i = ln.find(":")
		if i == -1:
			# Not a header, we skip it
			return None, read
		h = ln[:i].strip().lower()
		v = ln[i + 1 :].strip()
		if h == "content-length":
			try:
				n = int(v)
				self.contentLength = n if n >= 0 else None
			except ValueError:
				self.contentLength = None
		elif h == "content-type":
			self.contentType = v
		name: str = headername(h)
		self.headers[name] = v
		return name, read

	def __str__(self) -> str:
		return f"HeadersParser({self.headers})"


class BodyLengthParser:
	"""Parses the body of a request with `Content-Length` set"""

	__slots__ = ["expected", "read", "data"]

	def __init__(self) -> None:
		self.expected: int = 0
		self.read: int = 0
		self.data: list[bytes] = []

	def flush(self) -> HTTPBodyBlob:
		res = HTTPBodyBlob(b"".join(self.data), self.read)
		self.reset()
		return res

	def reset(self, length: int = 0) -> "BodyLengthParser":
		self.expected = length
		self.read = 0
		self.data.clear()
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool, int]:
		"""Returns `True` once the expected length has been read, along with
		the number of bytes consumed."""
		to_read: int = min(len(chunk) - start, self.expected - self.read)
		self.data.append(chunk[start : start + to_read])
		self.read += to_read
		return self.read >= self.expected, to_read


class HTTPParser:
	"""A stateful, incremental HTTP request parser. Chunks can be split at
	any point, and a chunk may hold more than one (pipelined) request."""

	MAX_LINE: ClassVar[int] = 64 * 1024
	# Request bodies are skipped, never used
	MAX_BODY: ClassVar[int] = 1024 * 1024

	def __init__(self) -> None:
		self.message: MessageParser = MessageParser()
		self.headers: HeadersParser = HeadersParser()
		self.body: BodyLengthParser = BodyLengthParser()
		self.parser: MessageParser | HeadersParser | BodyLengthParser = self.message
		self.requestLine: HTTPRequestLine | None = None
		self.requestHeaders: HTTPHeaders | None = None

	def reset(self) -> "HTTPParser":
		self.message.reset()
		self.headers.reset()
		self.body.reset()
		self.parser = self.message
		self.requestLine = None
		self.requestHeaders = None
		return self

	def complete(self, body: HTTPBodyBlob) -> HTTPRequest:
		line = self.requestLine
		headers = self.requestHeaders
		self.reset()
		if line is None or headers is None:
			raise RuntimeError("Request completed before its line and headers")
		return HTTPRequest(
			method=line.method,
			path=line.path,
			query=parseQuery(line.query),
			headers=headers,
			body=body,
			protocol=line.protocol,
		)

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			if self.parser is self.message:
				line, read = self.message.feed(chunk, offset)
				offset += read
				if line is False or (
					line is None and len(self.message.line.buffer) > self.MAX_LINE
				):
					self.reset()
					yield HTTPProcessingStatus.BadFormat
					return
				elif line is not None:
					self.requestLine = line
					self.parser = self.headers.reset()
					yield line
			elif self.parser is self.headers:
				name, read = self.headers.feed(chunk, offset)
				offset += read
				if name is None and len(self.headers.line.buffer) > self.MAX_LINE:
					self.reset()
					yield HTTPProcessingStatus.BadFormat
					return
				elif name is False:
					headers = self.headers.flush()
					self.requestHeaders = headers
					yield headers
					if "Transfer-Encoding" in headers.headers or (
						(headers.contentLength or 0) > self.MAX_BODY
					):
						# Only length-delimited, bounded bodies are supported
						self.reset()
						yield HTTPProcessingStatus.BadFormat
						return
					elif headers.contentLength:
						self.parser = self.body.reset(headers.contentLength)
						yield HTTPProcessingStatus.Body
					else:
						yield self.complete(HTTPBodyBlob())
			else:
				done, read = self.body.feed(chunk, offset)
				offset += read
				if done:
					yield self.complete(self.body.flush())


# EOF
