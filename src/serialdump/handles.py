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


import logging
import typing

from .constants import BASE_WIRE_HANDLE


__all__ = [
	"HandleTable",
]


_log = logging.getLogger(__name__)


class HandleTable(object):
	"""Assigns handles to the referenceable nodes of one stream and remembers what each handle names.
	
	Handles are assigned strictly in increasing order,
	starting at :data:`~serialdump.constants.BASE_WIRE_HANDLE`,
	exactly once per newly introduced node.
	A handle can be allocated before the node it names is complete
	(class descriptors are only complete after their superclass chain has been read),
	in which case the entry stays ``None`` until :meth:`assign` is called.
	"""
	
	base: int
	next_handle: int
	_entries: typing.Dict[int, typing.Any]
	
	def __init__(self, base: int = BASE_WIRE_HANDLE) -> None:
		super().__init__()
		
		self.base = base
		self.next_handle = base
		self._entries = {}
	
	def __repr__(self) -> str:
		return f"<{type(self).__module__}.{type(self).__qualname__} at {id(self):#x}: {len(self)} handles allocated>"
	
	def __len__(self) -> int:
		return self.next_handle - self.base
	
	def __contains__(self, handle: object) -> bool:
		return handle in self._entries
	
	def allocate(self, entity: typing.Any = None) -> int:
		"""Assign the next handle, optionally recording the node it names right away.
		
		:return: The newly assigned handle.
		"""
		
		handle = self.next_handle
		self.next_handle += 1
		self._entries[handle] = entity
		_log.debug("Allocated handle %#010x", handle)
		return handle
	
	def assign(self, handle: int, entity: typing.Any) -> None:
		"""Record the node named by an already allocated handle."""
		
		if handle not in self._entries:
			raise KeyError(f"Handle {handle:#010x} has not been allocated")
		self._entries[handle] = entity
	
	def lookup(self, handle: int) -> typing.Any:
		"""Return the node named by the given handle.
		
		:return: The node, or ``None`` if the handle was allocated but its node is not complete yet.
		:raises KeyError: If the handle has not been allocated (yet).
		"""
		
		try:
			return self._entries[handle]
		except KeyError:
			raise KeyError(f"Handle {handle:#010x} has not been allocated") from None
	
	def allocated_handles(self) -> typing.Sequence[int]:
		"""All handles allocated so far, in allocation order."""
		
		return range(self.base, self.next_handle)
	
	def items(self) -> typing.Iterable[typing.Tuple[int, typing.Any]]:
		return self._entries.items()
