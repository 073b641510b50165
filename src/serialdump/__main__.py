# This file is part of the python-serialdump library.
# Copyright (C) 2020 dgelessus
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.


import argparse
import logging
import sys
import typing


from . import __version__
from . import advanced_repr
from . import errors
from . import stream
from . import trace


def make_subcommand_parser(subs: typing.Any, name: str, *, help: str, description: str, **kwargs: typing.Any) -> argparse.ArgumentParser:
	"""Add a subcommand parser with some slightly modified defaults to a subcommand set.
	
	This function is used to ensure that all subcommands use the same base configuration for their ArgumentParser.
	"""
	
	ap = subs.add_parser(
		name,
		formatter_class=argparse.RawDescriptionHelpFormatter,
		help=help,
		description=description,
		allow_abbrev=False,
		add_help=False,
		**kwargs,
	)
	
	ap.add_argument("--help", action="help", help="Display this help message and exit.")
	ap.add_argument("--hex", action="store_true", help="The input is a hex dump of the stream data instead of raw binary data. Whitespace in the hex dump is ignored.")
	ap.add_argument("--max-depth", type=parse_max_depth, default=stream.DEFAULT_MAX_DEPTH, help=f"Fail if the stream is nested deeper than this many levels, at most {stream.DEFAULT_MAX_DEPTH} (default: %(default)s).")
	ap.add_argument("file", help="The serialization stream file to read, or - for stdin.")
	
	return ap


def parse_max_depth(text: str) -> int:
	"""Parse a --max-depth value.
	
	The value must be between 1 and :data:`~serialdump.stream.DEFAULT_MAX_DEPTH`.
	Deeper nesting can exceed Python's recursion limit.
	"""
	
	try:
		max_depth = int(text)
	except ValueError:
		raise argparse.ArgumentTypeError(f"invalid int value: {text!r}") from None
	
	if not 1 <= max_depth <= stream.DEFAULT_MAX_DEPTH:
		raise argparse.ArgumentTypeError(f"must be between 1 and {stream.DEFAULT_MAX_DEPTH}, not {max_depth}")
	
	return max_depth


def read_input_data(file: str, *, hex: bool) -> bytes:
	if file == "-":
		data = sys.stdin.buffer.read()
	else:
		with open(file, "rb") as f:
			data = f.read()
	
	if hex:
		try:
			return trace.parse_hex_ascii(data.decode("ascii"))
		except ValueError as e:
			print(f"Invalid hex input: {e}", file=sys.stderr)
			sys.exit(1)
	else:
		return data


def print_error(error: errors.DecodeError) -> None:
	print(f"Error: {error.kind.value} at offset {error.offset} (0x{error.offset:x})", file=sys.stderr)
	print(f"\t{error.message}", file=sys.stderr)


def do_read(ns: argparse.Namespace) -> typing.NoReturn:
	data = read_input_data(ns.file, hex=ns.hex)
	result = stream.parse_stream(data, max_depth=ns.max_depth)
	
	for line in trace.render_events(result.events, ns.indent):
		print(line)
	
	if result.error is not None:
		print_error(result.error)
		sys.exit(1)
	
	sys.exit(0)


def do_decode(ns: argparse.Namespace) -> typing.NoReturn:
	data = read_input_data(ns.file, hex=ns.hex)
	result = stream.parse_stream(data, max_depth=ns.max_depth)
	
	if result.error is not None:
		print_error(result.error)
		sys.exit(1)
	
	for node in result.contents:
		for line in advanced_repr.as_multiline_string(node):
			print(line)
	
	sys.exit(0)


def main() -> typing.NoReturn:
	"""Main function of the CLI.
	
	This function is a valid setuptools entry point.
	Arguments are passed in sys.argv,
	and every execution path ends with a sys.exit call.
	(setuptools entry points are also permitted to return an integer,
	which will be treated as an exit code.
	We do not use this feature and instead always call sys.exit ourselves.)
	"""
	
	ap = argparse.ArgumentParser(
		formatter_class=argparse.RawDescriptionHelpFormatter,
		description="""
%(prog)s is a tool for dissecting Java object serialization streams, as
produced by java.io.ObjectOutputStream, without access to the classes that
wrote them.
""",
		allow_abbrev=False,
		add_help=False,
	)
	
	ap.add_argument("--help", action="help", help="Display this help message and exit.")
	ap.add_argument("--version", action="version", version=__version__, help="Display version information and exit.")
	ap.add_argument("--verbose", action="store_true", help="Log debugging information about the decoding process to stderr.")
	
	subs = ap.add_subparsers(
		dest="subcommand",
		metavar="SUBCOMMAND",
	)
	
	sub_read = make_subcommand_parser(
		subs,
		"read",
		help="Read and display the raw contents of a serialization stream.",
		description="""
Read and display the raw contents of a serialization stream.

Every tag, length, handle and value is displayed as it's stored in the stream,
indented according to how it is nested. If the stream is invalid, everything
up to the point of the error is displayed, followed by the error and the
offset at which it occurred.
""",
	)
	sub_read.add_argument("--indent", default=trace.DEFAULT_INDENT, help="The string used to indent each nesting level (default: two spaces).")
	
	make_subcommand_parser(
		subs,
		"decode",
		help="Read, decode and display the objects in a serialization stream.",
		description="""
Read, decode and display the objects in a serialization stream.

The top-level content elements of the stream are decoded into an object graph
and displayed with their class data, one field per line. Objects that appear
more than once are displayed in full only the first time. Later occurrences,
as well as circular references, are displayed as references to the object's
handle.
""",
	)
	
	ns = ap.parse_args()
	
	if ns.verbose:
		logging.basicConfig(level=logging.DEBUG)
	
	if ns.subcommand is None:
		print("Missing subcommand", file=sys.stderr)
		sys.exit(2)
	elif ns.subcommand == "read":
		do_read(ns)
	elif ns.subcommand == "decode":
		do_decode(ns)
	else:
		print(f"Unknown subcommand: {ns.subcommand!r}", file=sys.stderr)
		sys.exit(2)


if __name__ == "__main__":
	sys.exit(main())
