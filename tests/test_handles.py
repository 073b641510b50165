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


import unittest

import serialdump.constants
import serialdump.handles
import serialdump.model
import serialdump.registry


class HandleTableTests(unittest.TestCase):
	def test_allocate(self) -> None:
		"""Handles start at the base handle and increase by one."""
		
		table = serialdump.handles.HandleTable()
		self.assertEqual(table.allocate("a"), serialdump.constants.BASE_WIRE_HANDLE)
		self.assertEqual(table.allocate("b"), 0x7e0001)
		self.assertEqual(table.allocate(), 0x7e0002)
		self.assertEqual(len(table), 3)
		self.assertEqual(list(table.allocated_handles()), [0x7e0000, 0x7e0001, 0x7e0002])
		self.assertEqual(table.lookup(0x7e0001), "b")
		self.assertIn(0x7e0002, table)
		self.assertNotIn(0x7e0003, table)
	
	def test_pending(self) -> None:
		"""A handle allocated without a node names nothing until it's assigned."""
		
		table = serialdump.handles.HandleTable()
		handle = table.allocate()
		self.assertIsNone(table.lookup(handle))
		table.assign(handle, "done")
		self.assertEqual(table.lookup(handle), "done")
	
	def test_unknown(self) -> None:
		table = serialdump.handles.HandleTable()
		table.allocate("a")
		
		with self.assertRaises(KeyError):
			table.lookup(0x7e0001)
		with self.assertRaises(KeyError):
			table.lookup(0)
		with self.assertRaises(KeyError):
			table.assign(0x7e0001, "b")
	
	def test_custom_base(self) -> None:
		table = serialdump.handles.HandleTable(0x10)
		self.assertEqual(table.allocate(), 0x10)
		self.assertEqual(dict(table.items()), {0x10: None})


class ClassDescriptorRegistryTests(unittest.TestCase):
	def setUp(self) -> None:
		flags = serialdump.constants.ClassDescFlags.SERIALIZABLE
		self.root = serialdump.model.ClassDescriptor("Root", 0x7e0002, flags, [])
		self.middle = serialdump.model.ClassDescriptor("Middle", 0x7e0001, flags, [], superclass_chain=self.root.chain)
		self.leaf = serialdump.model.ClassDescriptor("Leaf", 0x7e0000, flags, [], superclass_chain=self.middle.chain)
		
		self.registry = serialdump.registry.ClassDescriptorRegistry()
		self.registry.register(self.root.chain)
		self.registry.register(self.middle.chain)
		self.registry.register(self.leaf.chain)
	
	def test_resolve(self) -> None:
		self.assertEqual(self.registry.resolve_by_handle(0x7e0000), (self.leaf, self.middle, self.root))
		self.assertEqual(len(self.registry), 3)
	
	def test_resolve_superclass(self) -> None:
		"""Resolving a superclass handle returns the chain from that superclass upwards."""
		
		self.assertEqual(self.registry.resolve_by_handle(0x7e0001), (self.middle, self.root))
		self.assertEqual(self.registry.resolve_by_handle(0x7e0002), (self.root,))
	
	def test_resolve_only_in_longer_chain(self) -> None:
		"""A descriptor that was only registered as part of a subclass's chain can still be resolved."""
		
		registry = serialdump.registry.ClassDescriptorRegistry()
		registry.register(self.leaf.chain)
		self.assertEqual(registry.resolve_by_handle(0x7e0001), (self.middle, self.root))
	
	def test_unknown(self) -> None:
		with self.assertRaises(KeyError):
			self.registry.resolve_by_handle(0x7e0003)


if __name__ == "__main__":
	unittest.main()
