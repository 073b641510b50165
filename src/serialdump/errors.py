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


import enum


__all__ = [
	"ErrorKind",
	"InvalidSerializationStreamError",
	"DecodeError",
]


class ErrorKind(enum.Enum):
	"""Describes why a serialization stream could not be decoded.
	
	Every kind is fatal -
	the decoder never resynchronizes after an error.
	"""
	
	MALFORMED_HEADER = "malformed header"
	TRUNCATED_STREAM = "truncated stream"
	UNEXPECTED_TAG = "unexpected tag"
	UNEXPECTED_ARRAY_FIELD_TAG = "unexpected array field tag"
	UNEXPECTED_OBJECT_FIELD_TAG = "unexpected object field tag"
	INVALID_CLASS_DESC_FLAGS = "invalid class descriptor flags"
	UNKNOWN_CLASS_DESC_HANDLE = "unknown class descriptor handle"
	INVALID_ARRAY_CLASS_DESC = "invalid array class descriptor"
	UNSUPPORTED_EXTERNALIZABLE = "unsupported externalizable class"
	ILLEGAL_FIELD_TYPE_CODE = "illegal field type code"
	UNKNOWN_HANDLE = "unknown handle"
	INVALID_LENGTH = "invalid length"
	NESTING_TOO_DEEP = "nesting too deep"


class InvalidSerializationStreamError(Exception):
	"""Raised by :class:`~serialdump.stream.SerializationStreamReader` if the stream data is invalid
	or uses a feature that cannot be decoded.
	
	:attr:`kind` identifies the problem programmatically
	and :attr:`offset` is the position in the stream data at which the offending read started.
	"""
	
	kind: ErrorKind
	offset: int
	
	def __init__(self, kind: ErrorKind, offset: int, message: str) -> None:
		super().__init__(message)
		
		self.kind = kind
		self.offset = offset
	
	@property
	def message(self) -> str:
		return str(self.args[0])
	
	def __str__(self) -> str:
		return f"{self.kind.value} at offset {self.offset:#x}: {self.message}"


class DecodeError(object):
	"""The error part of a :class:`~serialdump.stream.DecodeResult`.
	
	This is a plain value counterpart of :class:`InvalidSerializationStreamError`,
	for callers that prefer inspecting a result over catching an exception.
	"""
	
	kind: ErrorKind
	offset: int
	message: str
	
	@classmethod
	def from_exception(cls, exc: InvalidSerializationStreamError) -> "DecodeError":
		return cls(exc.kind, exc.offset, exc.message)
	
	def __init__(self, kind: ErrorKind, offset: int, message: str) -> None:
		super().__init__()
		
		self.kind = kind
		self.offset = offset
		self.message = message
	
	def to_exception(self) -> InvalidSerializationStreamError:
		return InvalidSerializationStreamError(self.kind, self.offset, self.message)
	
	def __repr__(self) -> str:
		return f"{type(self).__module__}.{type(self).__qualname__}({self.kind}, {self.offset:#x}, {self.message!r})"
	
	def __str__(self) -> str:
		return f"{self.kind.value} at offset {self.offset:#x}: {self.message}"
	
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, DecodeError):
			return NotImplemented
		
		return self.kind == other.kind and self.offset == other.offset and self.message == other.message

