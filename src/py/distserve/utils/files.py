from pathlib import Path
from types import MappingProxyType
from typing import Mapping

DEFAULT_CONTENT_TYPE: str = "application/octet-stream"

# The only types we know about; anything else is served as opaque bytes.
CONTENT_TYPES: Mapping[str, str] = MappingProxyType(
	{
		".html": "text/html",
		".js": "text/javascript",
		".css": "text/css",
		".png": "image/png",
		".jpg": "image/jpeg",
		".gif": "image/gif",
		".svg": "image/svg+xml",
		".json": "application/json",
	}
)


def extension(path: Path | str) -> str:
	"""Returns the lower-cased extension of the last segment of `path`,
	including the leading dot, or an empty string."""
	name = str(path).replace("\\", "/").rsplit("/", 1)[-1]
	i = name.rfind(".")
	return name[i:].lower() if i >= 0 else ""


def contentType(path: Path | str) -> str:
	"""Returns the content type for the given path, based on its extension
	only. Matching is case-insensitive."""
	return CONTENT_TYPES.get(extension(path), DEFAULT_CONTENT_TYPE)


# EOF
