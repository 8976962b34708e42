"""
Static File Server Example

Serves the `dist` directory next to this file, the way a single page
application build is deployed.

Usage:
    python fileserver.py

Test with:
    curl -i http://localhost:3080/
    curl -i http://localhost:3080/app.js
    curl -i http://localhost:3080/../../etc/passwd   # 404
"""

from pathlib import Path

from distserve import FileService, run
from distserve.utils.logging import info

if __name__ == "__main__":
	root = Path(__file__).parent / "dist"
	root.mkdir(exist_ok=True)
	if not (root / "index.html").exists():
		(root / "index.html").write_text("<h1>hi</h1>")
	info("Serving example files", Root=str(root))
	run(FileService(root))

# EOF
