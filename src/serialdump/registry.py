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

from .model import ClassChain


__all__ = [
	"ClassDescriptorRegistry",
]


_log = logging.getLogger(__name__)


class ClassDescriptorRegistry(object):
	"""Remembers every class descriptor chain read from one stream.
	
	Objects and arrays often refer to their class descriptor by handle
	instead of repeating it.
	Such a handle may name any descriptor in any chain seen so far -
	including a superclass in the middle of a chain -
	and the object's data must still be read using that descriptor's full chain of superclasses.
	"""
	
	chains: typing.List[ClassChain]
	
	def __init__(self) -> None:
		super().__init__()
		
		self.chains = []
	
	def __repr__(self) -> str:
		return f"<{type(self).__module__}.{type(self).__qualname__} at {id(self):#x}: {len(self.chains)} chains>"
	
	def __len__(self) -> int:
		return len(self.chains)
	
	def register(self, chain: ClassChain) -> None:
		"""Append a complete chain (a descriptor followed by all of its superclass descriptors)."""
		
		self.chains.append(tuple(chain))
		_log.debug("Registered class descriptor chain: %s", " -> ".join(desc.name for desc in chain))
	
	def resolve_by_handle(self, handle: int) -> ClassChain:
		"""Find the descriptor with the given handle and return the sub-chain starting at it.
		
		Chains are searched in registration order,
		and each chain from its most-derived class to its root class.
		
		:raises KeyError: If no registered descriptor has the handle.
		"""
		
		for chain in self.chains:
			for i, desc in enumerate(chain):
				if desc.handle == handle:
					return chain[i:]
		
		raise KeyError(f"No class descriptor has handle {handle:#010x}")
