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


import struct
import typing

from .errors import ErrorKind, InvalidSerializationStreamError


__all__ = [
	"ByteCursor",
]


# All multi-byte values in a serialization stream are big-endian.
_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")
_U64 = struct.Struct(">Q")
_I16 = struct.Struct(">h")
_I32 = struct.Struct(">i")
_I64 = struct.Struct(">q")
_F32 = struct.Struct(">f")
_F64 = struct.Struct(">d")


class ByteCursor(object):
	"""Sequential, bounds-checked reader over an immutable byte buffer.
	
	Every read advances :attr:`position`,
	except for :meth:`peek_u8`.
	A read that needs more bytes than remain raises an :class:`~serialdump.errors.InvalidSerializationStreamError`
	of kind :attr:`~serialdump.errors.ErrorKind.TRUNCATED_STREAM`
	whose offset is the position at which the read started.
	"""
	
	_data: bytes
	position: int
	
	def __init__(self, data: typing.Union[bytes, bytearray, memoryview], position: int = 0) -> None:
		super().__init__()
		
		self._data = bytes(data)
		self.position = position
	
	def __repr__(self) -> str:
		return f"<{type(self).__module__}.{type(self).__qualname__} at {id(self):#x}: position {self.position} of {len(self._data)}>"
	
	def __len__(self) -> int:
		return len(self._data)
	
	@property
	def remaining(self) -> int:
		return len(self._data) - self.position
	
	def has_remaining(self) -> bool:
		return self.position < len(self._data)
	
	def _check_available(self, byte_count: int) -> None:
		# The length is checked against the buffer before anything is sliced,
		# so a huge declared length never causes a huge allocation.
		if byte_count < 0:
			raise InvalidSerializationStreamError(ErrorKind.INVALID_LENGTH, self.position, f"Attempted to read a negative number of bytes ({byte_count})")
		elif byte_count > self.remaining:
			raise InvalidSerializationStreamError(ErrorKind.TRUNCATED_STREAM, self.position, f"Attempted to read {byte_count} bytes of data, but only {self.remaining} bytes remain")
	
	def read_bytes(self, byte_count: int) -> bytes:
		"""Read exactly byte_count bytes."""
		
		self._check_available(byte_count)
		data = self._data[self.position:self.position + byte_count]
		self.position += byte_count
		return data
	
	def _unpack(self, struc: struct.Struct) -> typing.Any:
		self._check_available(struc.size)
		(value,) = struc.unpack_from(self._data, self.position)
		self.position += struc.size
		return value
	
	def peek_u8(self) -> int:
		"""Return the next byte without consuming it."""
		
		self._check_available(1)
		return self._data[self.position]
	
	def read_u8(self) -> int:
		value = self.peek_u8()
		self.position += 1
		return value
	
	def read_i8(self) -> int:
		value = self.read_u8()
		return value - 0x100 if value >= 0x80 else value
	
	def read_u16(self) -> int:
		return self._unpack(_U16)
	
	def read_u32(self) -> int:
		return self._unpack(_U32)
	
	def read_u64(self) -> int:
		return self._unpack(_U64)
	
	def read_i16(self) -> int:
		return self._unpack(_I16)
	
	def read_i32(self) -> int:
		return self._unpack(_I32)
	
	def read_i64(self) -> int:
		return self._unpack(_I64)
	
	def read_f32(self) -> float:
		return self._unpack(_F32)
	
	def read_f64(self) -> float:
		return self._unpack(_F64)
