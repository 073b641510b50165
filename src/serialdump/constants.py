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


"""Constants of the object serialization stream format.

The values match ``java.io.ObjectStreamConstants``.
"""


import enum
import typing


__all__ = [
	"STREAM_MAGIC",
	"STREAM_VERSION",
	"BASE_WIRE_HANDLE",
	"Tag",
	"ClassDescFlags",
	"PRIMITIVE_TYPE_CODES",
	"OBJECT_TYPE_CODES",
	"TYPE_CODE_NAMES",
	"PROXY_CLASS_NAME",
	"REFERENCE_CLASS_NAME",
]


STREAM_MAGIC = 0xaced
STREAM_VERSION = 0x0005

# The first handle number assigned in a stream.
# Every newly introduced class descriptor, object, string, array, class or enum constant gets the next number.
BASE_WIRE_HANDLE = 0x7e0000


class Tag(enum.IntEnum):
	"""The single-byte tags that introduce every content element in a stream."""
	
	NULL = 0x70
	REFERENCE = 0x71
	CLASSDESC = 0x72
	OBJECT = 0x73
	STRING = 0x74
	ARRAY = 0x75
	CLASS = 0x76
	BLOCKDATA = 0x77
	ENDBLOCKDATA = 0x78
	# RESET and EXCEPTION exist in the format, but are never accepted by the decoder.
	RESET = 0x79
	BLOCKDATALONG = 0x7a
	EXCEPTION = 0x7b
	LONGSTRING = 0x7c
	PROXYCLASSDESC = 0x7d
	ENUM = 0x7e
	
	@property
	def wire_name(self) -> str:
		"""The name of the tag as it is spelled in the protocol documentation, e. g. ``TC_OBJECT``."""
		
		return f"TC_{self.name}"


class ClassDescFlags(enum.IntFlag):
	"""Bits of the ``classDescFlags`` byte of a class descriptor."""
	
	WRITE_METHOD = 0x01
	SERIALIZABLE = 0x02
	EXTERNALIZABLE = 0x04
	BLOCK_DATA = 0x08
	# Set by Java for enum types, in addition to SERIALIZABLE.
	ENUM = 0x10
	
	def describe(self) -> str:
		"""Render the set bits as ``SC_*`` names joined by ``|``, in bit order."""
		
		names = []
		for flag, name in _FLAG_NAMES:
			if self & flag:
				names.append(name)
		return " | ".join(names)


_FLAG_NAMES: typing.Sequence[typing.Tuple[ClassDescFlags, str]] = [
	(ClassDescFlags.WRITE_METHOD, "SC_WRITE_METHOD"),
	(ClassDescFlags.SERIALIZABLE, "SC_SERIALIZABLE"),
	(ClassDescFlags.EXTERNALIZABLE, "SC_EXTERNALIZABLE"),
	(ClassDescFlags.BLOCK_DATA, "SC_BLOCKDATA"),
	(ClassDescFlags.ENUM, "SC_ENUM"),
]

PRIMITIVE_TYPE_CODES = "BCDFIJSZ"
OBJECT_TYPE_CODES = "[L"

# Human-readable names of the field type codes, as shown in field descriptors.
TYPE_CODE_NAMES: typing.Mapping[str, str] = {
	"B": "Byte",
	"C": "Char",
	"D": "Double",
	"F": "Float",
	"I": "Int",
	"J": "Long",
	"S": "Short",
	"Z": "Boolean",
	"[": "Array",
	"L": "Object",
}

# Proxy class descriptors have no class name in the stream.
# This placeholder name is used for them instead.
PROXY_CLASS_NAME = "<Dynamic Proxy Class>"

# A field class name given as a reference to something other than a string
# has no text of its own.
# This placeholder is used as the class name instead.
REFERENCE_CLASS_NAME = "[TC_REF]"
