from .http.model import HTTPRequest, HTTPResponse, HTTPRequestError  # NOQA: F401
from .files import FileService  # NOQA: F401
from .server import run  # NOQA: F401

# EOF
