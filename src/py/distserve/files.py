import asyncio
import os
import stat
from pathlib import Path
from typing import ClassVar
from urllib.parse import unquote

from .http.model import HTTPRequest, HTTPResponse
from .utils.files import contentType
from .utils.logging import LogLevel, debug, logged, warning


def readFile(path: Path) -> bytes:
	with open(path, "rb") as f:
		return f.read()


class FileService:
	"""Serves the files under a root directory. Directories are served
	through their `index.html`, and the content type is inferred from the
	file extension. Only the request path is looked at: the method and the
	query parameters have no effect.

	Paths are resolved lexically: the request path is percent-decoded,
	joined onto the root and normalized, and any result that is not the root
	or below it is treated as not found. Symbolic links inside the root are
	followed."""

	INDEX: ClassVar[str] = "index.html"

	def __init__(self, root: str | Path = "dist"):
		self.root: Path = Path(os.path.abspath(root))

	def resolvePath(self, path: str) -> Path | None:
		"""Returns the local path for the given request path, or `None`
		when it would fall outside of the root."""
		relative: str = unquote(path)
		if "\x00" in relative:
			return None
		root: str = str(self.root)
		# Leading slashes would make the join discard the root
		local: str = os.path.normpath(os.path.join(root, relative.lstrip("/")))
		try:
			if os.path.commonpath([root, local]) != root:
				return None
		except ValueError:
			# Paths on different drives
			return None
		return Path(local)

	async def handle(self, request: HTTPRequest) -> HTTPResponse:
		path: str = request.path
		local_path = self.resolvePath(path)
		if local_path is None:
			logged(LogLevel.Debug) and debug("Path outside of root", Path=path)
			return request.notFound(f"File {path} not found!")
		loop = asyncio.get_running_loop()
		try:
			stats = await loop.run_in_executor(None, os.stat, local_path)
		except OSError:
			logged(LogLevel.Debug) and debug("File not found", Path=str(local_path))
			return request.notFound(f"File {local_path} not found!")
		is_dir: bool = stat.S_ISDIR(stats.st_mode)
		if unquote(path).endswith("/") and not is_dir:
			# The normalization drops the trailing slash, `file.js/` is not a file
			logged(LogLevel.Debug) and debug("Not a directory", Path=str(local_path))
			return request.notFound(f"File {local_path}/ not found!")
		if is_dir:
			# Already contained, no need to check again
			local_path = local_path / self.INDEX
		try:
			data: bytes = await loop.run_in_executor(None, readFile, local_path)
		except OSError as e:
			warning("Could not read file", Path=str(local_path), Error=str(e))
			return request.fail("Error getting the file.")
		return request.respondBytes(data, contentType=contentType(local_path))

	def __repr__(self) -> str:
		return f"(FileService {self.root})"


# EOF
