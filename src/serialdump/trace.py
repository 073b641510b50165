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


"""Plain text rendering of decode events and hex input handling."""


import typing

from .stream import DecodeEvent


__all__ = [
	"DEFAULT_INDENT",
	"render_event",
	"render_events",
	"parse_hex_ascii",
]


DEFAULT_INDENT = "  "


def render_event(event: DecodeEvent, indent: str = DEFAULT_INDENT) -> str:
	"""Render a single event as one line, indented according to its depth."""
	
	return indent * event.depth + str(event)


def render_events(events: typing.Iterable[DecodeEvent], indent: str = DEFAULT_INDENT) -> typing.Iterator[str]:
	for event in events:
		yield render_event(event, indent)


def parse_hex_ascii(text: str) -> bytes:
	"""Convert a hex dump of stream data back into bytes.
	
	All whitespace is ignored,
	so the input can be split into lines or groups of bytes in any way.
	A leading ``0x`` is also accepted.
	
	:raises ValueError: If the text contains anything other than hex digits and whitespace,
		or an odd number of hex digits.
	"""
	
	digits = "".join(text.split())
	if digits[:2].lower() == "0x":
		digits = digits[2:]
	return bytes.fromhex(digits)
