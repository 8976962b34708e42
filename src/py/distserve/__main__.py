import argparse
import os

from . import config
from .server import run
from .utils.logging import warning


def main(args: list[str] | None = None) -> None:
	parser = argparse.ArgumentParser(
		prog="distserve",
		description="Serves the static files of a directory over HTTP",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	parser.add_argument(
		"root",
		metavar="ROOT",
		nargs="?",
		default=config.ROOT,
		help="The directory to serve",
	)
	parser.add_argument(
		"-p",
		"--port",
		action="store",
		dest="port",
		type=int,
		help="Specifies the port",
		default=config.PORT,
	)
	parser.add_argument(
		"-H",
		"--host",
		action="store",
		dest="host",
		help="Specifies the address to listen on",
		default=config.HOST,
	)
	options = parser.parse_args(args=args)
	if not os.path.isdir(options.root):
		warning("Root directory does not exist, all requests will be 404", Root=options.root)
	run(root=options.root, host=options.host, port=options.port)


if __name__ == "__main__":
	main()

# EOF
