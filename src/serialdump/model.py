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


"""Nodes produced by :class:`~serialdump.stream.SerializationStreamReader` for the content elements of a stream.

None of these classes are instantiated from application classes -
they only describe what was recorded in the stream.
"""


import typing

from . import advanced_repr
from .constants import ClassDescFlags, PRIMITIVE_TYPE_CODES, PROXY_CLASS_NAME, TYPE_CODE_NAMES


__all__ = [
	"check_class_desc_flags",
	"FieldSpec",
	"ClassDescriptor",
	"ClassChain",
	"PrimitiveValue",
	"JavaString",
	"ClassData",
	"JavaObject",
	"JavaArray",
	"JavaClass",
	"JavaEnum",
	"BlockData",
	"Reference",
	"Node",
	"FieldValue",
]


def _format_handle(handle: int) -> str:
	return f"{handle:#010x}"


def _chain_name(chain: "typing.Optional[ClassChain]") -> str:
	if not chain:
		return "(no class)"
	else:
		return chain[0].name


def check_class_desc_flags(flags: ClassDescFlags) -> typing.Optional[str]:
	"""Check a ``classDescFlags`` value for illegal combinations of bits.
	
	:return: A description of the problem,
		or ``None`` if the combination is legal.
	"""
	
	if flags & ClassDescFlags.SERIALIZABLE:
		if flags & ClassDescFlags.EXTERNALIZABLE:
			return "SC_SERIALIZABLE is not compatible with SC_EXTERNALIZABLE"
		elif flags & ClassDescFlags.BLOCK_DATA:
			return "SC_SERIALIZABLE is not compatible with SC_BLOCKDATA"
	elif flags & ClassDescFlags.EXTERNALIZABLE:
		if flags & ClassDescFlags.WRITE_METHOD:
			return "SC_EXTERNALIZABLE is not compatible with SC_WRITE_METHOD"
	elif flags:
		return "flags must include either SC_SERIALIZABLE or SC_EXTERNALIZABLE"
	
	return None


class FieldSpec(object):
	"""Describes one field of a class, as declared in its class descriptor.
	
	For object and array fields (type codes ``L`` and ``[``),
	:attr:`class_name` is the field's declared type in JVM descriptor syntax,
	e. g. ``Ljava/lang/String;`` or ``[I``.
	If the class name is a reference to something other than a string,
	it is the placeholder :data:`~serialdump.constants.REFERENCE_CLASS_NAME`.
	For primitive fields it is ``None``.
	"""
	
	type_code: str
	name: str
	class_name: typing.Optional[str]
	
	def __init__(self, type_code: str, name: str, class_name: typing.Optional[str] = None) -> None:
		super().__init__()
		
		self.type_code = type_code
		self.name = name
		self.class_name = class_name
	
	@property
	def type_name(self) -> str:
		return TYPE_CODE_NAMES[self.type_code]
	
	@property
	def is_primitive(self) -> bool:
		return self.type_code in PRIMITIVE_TYPE_CODES
	
	def __repr__(self) -> str:
		return f"{type(self).__module__}.{type(self).__qualname__}(type_code={self.type_code!r}, name={self.name!r}, class_name={self.class_name!r})"
	
	def __str__(self) -> str:
		if self.class_name is None:
			return f"{self.type_name.lower()} {self.name}"
		else:
			return f"{self.type_name.lower()} {self.name} ({self.class_name})"
	
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, FieldSpec):
			return NotImplemented
		
		return self.type_code == other.type_code and self.name == other.name and self.class_name == other.class_name


class ClassDescriptor(advanced_repr.AsMultilineStringBase):
	"""A class descriptor as recorded in the stream.
	
	A descriptor is fully built before it is handed out
	and is never modified afterwards.
	Its superclass descriptors are stored as a chain,
	most-derived first,
	just like :attr:`chain`,
	which additionally starts with the descriptor itself.
	
	Proxy class descriptors have the placeholder name :data:`~serialdump.constants.PROXY_CLASS_NAME`,
	no flags and no fields,
	and list their interfaces in :attr:`proxy_interface_names`.
	"""
	
	name: str
	handle: int
	flags: ClassDescFlags
	fields: typing.Sequence[FieldSpec]
	serial_version_uid: typing.Optional[int]
	superclass_chain: "ClassChain"
	annotations: typing.Sequence["Node"]
	proxy_interface_names: typing.Optional[typing.Sequence[str]]
	
	@classmethod
	def proxy(
		cls,
		handle: int,
		interface_names: typing.Sequence[str],
		*,
		superclass_chain: "ClassChain" = (),
		annotations: typing.Sequence["Node"] = (),
	) -> "ClassDescriptor":
		return cls(
			PROXY_CLASS_NAME,
			handle,
			ClassDescFlags(0),
			(),
			serial_version_uid=None,
			superclass_chain=superclass_chain,
			annotations=annotations,
			proxy_interface_names=tuple(interface_names),
		)
	
	def __init__(
		self,
		name: str,
		handle: int,
		flags: ClassDescFlags,
		fields: typing.Sequence[FieldSpec],
		*,
		serial_version_uid: typing.Optional[int] = None,
		superclass_chain: "ClassChain" = (),
		annotations: typing.Sequence["Node"] = (),
		proxy_interface_names: typing.Optional[typing.Sequence[str]] = None,
	) -> None:
		super().__init__()
		
		self.name = name
		self.handle = handle
		self.flags = flags
		self.fields = tuple(fields)
		self.serial_version_uid = serial_version_uid
		self.superclass_chain = tuple(superclass_chain)
		self.annotations = tuple(annotations)
		self.proxy_interface_names = proxy_interface_names
	
	@property
	def chain(self) -> "ClassChain":
		"""This descriptor followed by all of its superclass descriptors, most-derived first."""
		
		return (self,) + tuple(self.superclass_chain)
	
	@property
	def is_proxy(self) -> bool:
		return self.proxy_interface_names is not None
	
	@property
	def serializable(self) -> bool:
		return bool(self.flags & ClassDescFlags.SERIALIZABLE)
	
	@property
	def externalizable(self) -> bool:
		return bool(self.flags & ClassDescFlags.EXTERNALIZABLE)
	
	@property
	def has_write_method(self) -> bool:
		return bool(self.flags & ClassDescFlags.WRITE_METHOD)
	
	@property
	def has_block_data(self) -> bool:
		return bool(self.flags & ClassDescFlags.BLOCK_DATA)
	
	@property
	def has_object_annotation(self) -> bool:
		"""Whether the class data of this class ends with an object annotation block."""
		
		return (self.serializable and self.has_write_method) or (self.externalizable and self.has_block_data)
	
	def __repr__(self) -> str:
		return f"<{type(self).__module__}.{type(self).__qualname__} {_format_handle(self.handle)}: {self.name}>"
	
	def _multiline_handle_(self) -> typing.Optional[int]:
		return self.handle
	
	def _as_multiline_string_header_(self) -> str:
		flags = self.flags.describe() or "no flags"
		return f"class descriptor {_format_handle(self.handle)} {self.name} ({flags})"
	
	def _as_multiline_string_body_(self) -> typing.Iterable[str]:
		if self.serial_version_uid is not None:
			yield f"serialVersionUID: {self.serial_version_uid & 0xffffffffffffffff:#018x}"
		if self.proxy_interface_names is not None:
			yield "interfaces: " + ", ".join(self.proxy_interface_names)
		for field in self.fields:
			yield f"field: {field}"
		for annotation in self.annotations:
			yield from advanced_repr.as_multiline_string(annotation, prefix="annotation: ")
		if self.superclass_chain:
			yield from advanced_repr.as_multiline_string(self.superclass_chain[0], prefix="extends ")


ClassChain = typing.Tuple[ClassDescriptor, ...]


class PrimitiveValue(object):
	"""The value of a primitive field or array element, together with its type code.
	
	The Python type of :attr:`value` depends on the type code:
	:class:`int` for ``B``, ``S``, ``I`` and ``J``,
	a single-character :class:`str` for ``C``,
	:class:`float` for ``F`` and ``D``,
	and :class:`bool` for ``Z``.
	"""
	
	type_code: str
	value: typing.Union[int, float, bool, str]
	
	def __init__(self, type_code: str, value: typing.Union[int, float, bool, str]) -> None:
		super().__init__()
		
		self.type_code = type_code
		self.value = value
	
	def __repr__(self) -> str:
		return f"{type(self).__module__}.{type(self).__qualname__}({self.type_code!r}, {self.value!r})"
	
	def __str__(self) -> str:
		return f"({TYPE_CODE_NAMES[self.type_code].lower()}) {self.value!r}"
	
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, PrimitiveValue):
			return NotImplemented
		
		return self.type_code == other.type_code and self.value == other.value


class JavaString(advanced_repr.AsMultilineStringBase):
	"""A string instance (``TC_STRING`` or ``TC_LONGSTRING``).
	
	:attr:`value` is the decoded text with ``<`` and ``>`` escaped as ``&lt;`` and ``&gt;``.
	"""
	
	handle: int
	value: str
	long: bool
	
	def __init__(self, handle: int, value: str, *, long: bool = False) -> None:
		super().__init__()
		
		self.handle = handle
		self.value = value
		self.long = long
	
	def __repr__(self) -> str:
		return f"{type(self).__module__}.{type(self).__qualname__}({_format_handle(self.handle)}, {self.value!r}, long={self.long!r})"
	
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, JavaString):
			return NotImplemented
		
		return self.handle == other.handle and self.value == other.value and self.long == other.long
	
	def _multiline_handle_(self) -> typing.Optional[int]:
		return self.handle
	
	def _as_multiline_string_header_(self) -> str:
		return f"string {_format_handle(self.handle)}: {self.value!r}"
	
	def _as_multiline_string_body_(self) -> typing.Iterable[str]:
		return ()


class ClassData(advanced_repr.AsMultilineStringBase):
	"""The part of an object's data that belongs to one class in its class chain."""
	
	descriptor: ClassDescriptor
	values: typing.List[typing.Tuple[FieldSpec, "FieldValue"]]
	annotations: typing.List["Node"]
	
	def __init__(
		self,
		descriptor: ClassDescriptor,
		values: typing.List[typing.Tuple[FieldSpec, "FieldValue"]],
		annotations: typing.List["Node"],
	) -> None:
		super().__init__()
		
		self.descriptor = descriptor
		self.values = values
		self.annotations = annotations
	
	def __repr__(self) -> str:
		return f"{type(self).__module__}.{type(self).__qualname__}(descriptor={self.descriptor!r}, values={self.values!r}, annotations={self.annotations!r})"
	
	def field_values(self) -> typing.Dict[str, "FieldValue"]:
		return {field.name: value for field, value in self.values}
	
	def _as_multiline_string_header_(self) -> str:
		return f"class {self.descriptor.name}"
	
	def _as_multiline_string_body_(self) -> typing.Iterable[str]:
		for field, value in self.values:
			yield from advanced_repr.as_multiline_string(value, prefix=f"{field.name}: ")
		for annotation in self.annotations:
			yield from advanced_repr.as_multiline_string(annotation, prefix="annotation: ")


class JavaObject(advanced_repr.AsMultilineStringBase):
	"""An object instance (``TC_OBJECT``).
	
	:attr:`class_data` is filled in while the object's data is read,
	after the object has already been registered under its handle,
	so that the data can refer back to the object itself.
	It is ordered from the most-super class to the most-derived class,
	i. e. in the opposite order to :attr:`class_chain`.
	"""
	
	handle: int
	class_chain: typing.Optional[ClassChain]
	class_data: typing.List[ClassData]
	
	def __init__(self, handle: int, class_chain: typing.Optional[ClassChain], class_data: typing.Optional[typing.List[ClassData]] = None) -> None:
		super().__init__()
		
		self.handle = handle
		self.class_chain = class_chain
		self.class_data = [] if class_data is None else class_data
	
	@property
	def class_name(self) -> str:
		return _chain_name(self.class_chain)
	
	def field_values(self) -> typing.Dict[str, "FieldValue"]:
		"""Map all field names to their values.
		
		If a subclass declares a field with the same name as a superclass,
		the subclass's value wins.
		"""
		
		values: typing.Dict[str, FieldValue] = {}
		for data in self.class_data:
			values.update(data.field_values())
		return values
	
	def __repr__(self) -> str:
		return f"<{type(self).__module__}.{type(self).__qualname__} {_format_handle(self.handle)}: {self.class_name}>"
	
	def _multiline_handle_(self) -> typing.Optional[int]:
		return self.handle
	
	def _as_multiline_string_header_(self) -> str:
		header = f"object {_format_handle(self.handle)} of class {self.class_name}"
		if not self.class_data:
			header += ", no contents"
		return header
	
	def _as_multiline_string_body_(self) -> typing.Iterable[str]:
		for data in self.class_data:
			yield from advanced_repr.as_multiline_string(data)


class JavaArray(advanced_repr.AsMultilineStringBase):
	"""An array instance (``TC_ARRAY``).
	
	:attr:`elements` is filled in after the array has been registered under its handle,
	like the class data of a :class:`JavaObject`.
	"""
	
	handle: int
	descriptor: ClassDescriptor
	elements: typing.List["FieldValue"]
	
	def __init__(self, handle: int, descriptor: ClassDescriptor, elements: typing.Optional[typing.List["FieldValue"]] = None) -> None:
		super().__init__()
		
		self.handle = handle
		self.descriptor = descriptor
		self.elements = [] if elements is None else elements
	
	@property
	def element_type_code(self) -> str:
		return self.descriptor.name[1]
	
	def __repr__(self) -> str:
		return f"<{type(self).__module__}.{type(self).__qualname__} {_format_handle(self.handle)}: {self.descriptor.name}, {len(self.elements)} elements>"
	
	def _multiline_handle_(self) -> typing.Optional[int]:
		return self.handle
	
	def _as_multiline_string_header_(self) -> str:
		return f"array {_format_handle(self.handle)} of type {self.descriptor.name}, {len(self.elements)} elements"
	
	def _as_multiline_string_body_(self) -> typing.Iterable[str]:
		for i, element in enumerate(self.elements):
			yield from advanced_repr.as_multiline_string(element, prefix=f"[{i}]: ")


class JavaClass(advanced_repr.AsMultilineStringBase):
	"""A class literal (``TC_CLASS``)."""
	
	handle: int
	class_chain: typing.Optional[ClassChain]
	
	def __init__(self, handle: int, class_chain: typing.Optional[ClassChain]) -> None:
		super().__init__()
		
		self.handle = handle
		self.class_chain = class_chain
	
	@property
	def class_name(self) -> str:
		return _chain_name(self.class_chain)
	
	def __repr__(self) -> str:
		return f"<{type(self).__module__}.{type(self).__qualname__} {_format_handle(self.handle)}: {self.class_name}>"
	
	def _multiline_handle_(self) -> typing.Optional[int]:
		return self.handle
	
	def _as_multiline_string_header_(self) -> str:
		return f"class {_format_handle(self.handle)} {self.class_name}"
	
	def _as_multiline_string_body_(self) -> typing.Iterable[str]:
		if self.class_chain:
			yield from advanced_repr.as_multiline_string(self.class_chain[0], prefix="descriptor: ")


class JavaEnum(advanced_repr.AsMultilineStringBase):
	"""An enum constant (``TC_ENUM``).
	
	:attr:`constant_name` is the name string as it appears in the stream,
	which may be a reference to a string introduced earlier.
	"""
	
	handle: int
	class_chain: typing.Optional[ClassChain]
	constant_name: typing.Union[JavaString, "Reference"]
	
	def __init__(self, handle: int, class_chain: typing.Optional[ClassChain], constant_name: typing.Union[JavaString, "Reference"]) -> None:
		super().__init__()
		
		self.handle = handle
		self.class_chain = class_chain
		self.constant_name = constant_name
	
	@property
	def class_name(self) -> str:
		return _chain_name(self.class_chain)
	
	@property
	def name(self) -> typing.Optional[str]:
		"""The constant's name as text, or ``None`` if it refers to something other than a string."""
		
		target = self.constant_name.target if isinstance(self.constant_name, Reference) else self.constant_name
		return target.value if isinstance(target, JavaString) else None
	
	def __repr__(self) -> str:
		return f"<{type(self).__module__}.{type(self).__qualname__} {_format_handle(self.handle)}: {self.class_name}.{self.name}>"
	
	def _multiline_handle_(self) -> typing.Optional[int]:
		return self.handle
	
	def _as_multiline_string_header_(self) -> str:
		return f"enum {_format_handle(self.handle)} {self.class_name}.{self.name}"
	
	def _as_multiline_string_body_(self) -> typing.Iterable[str]:
		return ()


class BlockData(object):
	"""Opaque block data (``TC_BLOCKDATA`` or ``TC_BLOCKDATALONG``)."""
	
	data: bytes
	
	def __init__(self, data: bytes) -> None:
		super().__init__()
		
		self.data = data
	
	def __repr__(self) -> str:
		return f"{type(self).__module__}.{type(self).__qualname__}({self.data!r})"
	
	def __str__(self) -> str:
		return f"block data, {len(self.data)} bytes: 0x{self.data.hex()}"
	
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, BlockData):
			return NotImplemented
		
		return self.data == other.data


class Reference(advanced_repr.AsMultilineStringBase):
	"""A back-reference (``TC_REFERENCE``) to a node introduced earlier in the stream.
	
	:attr:`target` is the referenced node.
	It is ``None`` only if the reference points at a class descriptor that is still being read,
	which can happen from inside the descriptor's own class annotation.
	"""
	
	handle: int
	target: typing.Optional["Node"]
	
	def __init__(self, handle: int, target: typing.Optional["Node"]) -> None:
		super().__init__()
		
		self.handle = handle
		self.target = target
	
	def __repr__(self) -> str:
		return f"{type(self).__module__}.{type(self).__qualname__}({_format_handle(self.handle)}, {self.target!r})"
	
	def _as_multiline_string_(self) -> typing.Iterable[str]:
		if self.target is None:
			yield f"reference to {_format_handle(self.handle)} (incomplete class descriptor)"
		else:
			yield from advanced_repr.as_multiline_string(self.target, prefix="reference: ")


Node = typing.Union[ClassDescriptor, JavaString, JavaObject, JavaArray, JavaClass, JavaEnum, BlockData, Reference]
FieldValue = typing.Optional[typing.Union[PrimitiveValue, JavaString, JavaObject, JavaArray, JavaClass, JavaEnum, Reference]]
