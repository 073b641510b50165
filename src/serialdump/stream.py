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
import os
import typing

from .constants import (
	BASE_WIRE_HANDLE,
	ClassDescFlags,
	OBJECT_TYPE_CODES,
	REFERENCE_CLASS_NAME,
	STREAM_MAGIC,
	STREAM_VERSION,
	Tag,
	TYPE_CODE_NAMES,
)
from .cursor import ByteCursor
from .errors import DecodeError, ErrorKind, InvalidSerializationStreamError
from .handles import HandleTable
from .model import (
	BlockData,
	check_class_desc_flags,
	ClassChain,
	ClassData,
	ClassDescriptor,
	FieldSpec,
	FieldValue,
	JavaArray,
	JavaClass,
	JavaEnum,
	JavaObject,
	JavaString,
	Node,
	PrimitiveValue,
	Reference,
)
from .registry import ClassDescriptorRegistry


__all__ = [
	"DEFAULT_MAX_DEPTH",
	"DecodeEvent",
	"SerializationStreamReader",
	"DecodeResult",
	"parse_stream",
]


_log = logging.getLogger(__name__)

# Nesting limit for decode events.
# Every nested object costs several levels of depth,
# so this allows objects nested a few dozen levels deep,
# which is far more than real streams use,
# while staying well within Python's recursion limit.
DEFAULT_MAX_DEPTH = 256

# Short and long strings are read one byte per character.
# Angle brackets are escaped so that the text can be embedded in rendered output.
_TEXT_ESCAPES = str.maketrans({"<": "&lt;", ">": "&gt;"})


def _decode_text(data: bytes) -> str:
	return data.decode("latin-1").translate(_TEXT_ESCAPES)


def _describe_tag(tag: int) -> str:
	try:
		return f"{Tag(tag).wire_name} (0x{tag:02x})"
	except ValueError:
		return f"0x{tag:02x}"


class DecodeEvent(object):
	"""A single line of the decode trace.
	
	Events are generated in stream order.
	:attr:`depth` is the nesting level (0 for the stream header),
	:attr:`label` names what was read
	and :attr:`value` is its rendered value,
	if it has one.
	"""
	
	depth: int
	label: str
	value: typing.Optional[str]
	
	def __init__(self, depth: int, label: str, value: typing.Optional[str] = None) -> None:
		super().__init__()
		
		self.depth = depth
		self.label = label
		self.value = value
	
	def __repr__(self) -> str:
		return f"{type(self).__module__}.{type(self).__qualname__}({self.depth!r}, {self.label!r}, {self.value!r})"
	
	def __str__(self) -> str:
		if self.value is None:
			return self.label
		else:
			return f"{self.label} - {self.value}"
	
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, DecodeEvent):
			return NotImplemented
		
		return self.depth == other.depth and self.label == other.label and self.value == other.value


_T = typing.TypeVar("_T")
_Decoding = typing.Generator[DecodeEvent, None, _T]


class SerializationStreamReader(typing.Iterator[DecodeEvent]):
	"""Decodes a complete object serialization stream held in memory.
	
	The stream header is checked as soon as the reader is created.
	Iterating over the reader decodes the content elements one by one
	and generates a :class:`DecodeEvent` for everything that is read.
	The decoded top-level nodes are collected in :attr:`contents`.
	
	Any problem with the data raises an :class:`~serialdump.errors.InvalidSerializationStreamError`,
	which ends the iteration for good -
	the reader does not try to recover.
	"""
	
	_cursor: ByteCursor
	max_depth: int
	
	handles: HandleTable
	registry: ClassDescriptorRegistry
	contents: typing.List[typing.Optional[Node]]
	
	_header_events: typing.List[DecodeEvent]
	_events_iterator: typing.Iterator[DecodeEvent]
	
	@classmethod
	def from_data(cls, data: bytes, *, max_depth: int = DEFAULT_MAX_DEPTH) -> "SerializationStreamReader":
		"""Create a reader for the given stream data."""
		
		return cls(data, max_depth=max_depth)
	
	@classmethod
	def open(cls, filename: typing.Union[str, bytes, os.PathLike], *, max_depth: int = DEFAULT_MAX_DEPTH) -> "SerializationStreamReader":
		"""Read the entire file at the given path and create a reader for its contents."""
		
		with open(filename, "rb") as f:
			return cls(f.read(), max_depth=max_depth)
	
	def __init__(self, data: bytes, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
		"""Create a :class:`SerializationStreamReader` for the given stream data.
		
		:param data: The complete stream data, starting with the stream header.
		:param max_depth: The maximum nesting depth of decode events.
			Streams that nest deeper fail with :attr:`~serialdump.errors.ErrorKind.NESTING_TOO_DEEP`.
		:raises InvalidSerializationStreamError: If the stream header is invalid.
		"""
		
		super().__init__()
		
		self._cursor = ByteCursor(data)
		self.max_depth = max_depth
		
		self.handles = HandleTable(BASE_WIRE_HANDLE)
		self.registry = ClassDescriptorRegistry()
		self.contents = []
		
		self._header_events = self._read_header()
		self._events_iterator = self._read_all_contents()
	
	def __repr__(self) -> str:
		return f"<{type(self).__module__}.{type(self).__qualname__} at {id(self):#x}: offset {self._cursor.position} of {len(self._cursor)}, {len(self.handles)} handles>"
	
	def __iter__(self) -> typing.Iterator[DecodeEvent]:
		return self
	
	def __next__(self) -> DecodeEvent:
		return next(self._events_iterator)
	
	@property
	def position(self) -> int:
		return self._cursor.position
	
	def read_all(self) -> typing.List[DecodeEvent]:
		"""Decode the rest of the stream and return all events that haven't been consumed yet."""
		
		return list(self)
	
	def _error(self, kind: ErrorKind, offset: int, message: str) -> InvalidSerializationStreamError:
		return InvalidSerializationStreamError(kind, offset, message)
	
	def _check_depth(self, depth: int) -> None:
		if depth > self.max_depth:
			raise self._error(ErrorKind.NESTING_TOO_DEEP, self._cursor.position, f"Content is nested more than {self.max_depth} levels deep")
	
	def _read_header(self) -> typing.List[DecodeEvent]:
		"""Read and check the stream header (magic number and version).
		
		This is called only once,
		as part of :meth:`__init__`.
		"""
		
		if self._cursor.remaining < 4:
			raise self._error(ErrorKind.MALFORMED_HEADER, 0, f"Stream header must be 4 bytes long, but the stream only has {self._cursor.remaining} bytes")
		
		magic = self._cursor.read_u16()
		if magic != STREAM_MAGIC:
			raise self._error(ErrorKind.MALFORMED_HEADER, 0, f"Invalid STREAM_MAGIC 0x{magic:04x}, should be 0x{STREAM_MAGIC:04x}")
		
		version = self._cursor.read_u16()
		if version != STREAM_VERSION:
			raise self._error(ErrorKind.MALFORMED_HEADER, 2, f"Invalid STREAM_VERSION 0x{version:04x}, should be 0x{STREAM_VERSION:04x}")
		
		_log.debug("Stream header OK, %d bytes of content", self._cursor.remaining)
		
		return [
			DecodeEvent(0, "STREAM_MAGIC", f"0x{magic:04x}"),
			DecodeEvent(0, "STREAM_VERSION", f"0x{version:04x}"),
			DecodeEvent(0, "Contents"),
		]
	
	def _expect_tag(self, tag: Tag, depth: int) -> _Decoding[None]:
		offset = self._cursor.position
		actual = self._cursor.read_u8()
		if actual != tag:
			raise self._error(ErrorKind.UNEXPECTED_TAG, offset, f"Expected {tag.wire_name}, found {_describe_tag(actual)}")
		yield DecodeEvent(depth, tag.wire_name, f"0x{actual:02x}")
	
	def _new_handle(self, depth: int, entity: typing.Any = None) -> _Decoding[int]:
		handle = self.handles.allocate(entity)
		yield DecodeEvent(depth, "newHandle", f"0x{handle:08x}")
		return handle
	
	def _read_content_element(self, depth: int) -> _Decoding[typing.Optional[Node]]:
		"""Read any content element, dispatching on its tag."""
		
		self._check_depth(depth)
		offset = self._cursor.position
		tag = self._cursor.peek_u8()
		if tag == Tag.OBJECT:
			return (yield from self._read_new_object(depth))
		elif tag == Tag.CLASS:
			return (yield from self._read_new_class(depth))
		elif tag == Tag.ARRAY:
			return (yield from self._read_new_array(depth))
		elif tag in (Tag.STRING, Tag.LONGSTRING):
			return (yield from self._read_string(depth))
		elif tag == Tag.ENUM:
			return (yield from self._read_new_enum(depth))
		elif tag in (Tag.CLASSDESC, Tag.PROXYCLASSDESC):
			return (yield from self._read_new_class_desc(depth))
		elif tag == Tag.REFERENCE:
			return (yield from self._read_reference(depth))
		elif tag == Tag.NULL:
			yield from self._expect_tag(Tag.NULL, depth)
			return None
		elif tag == Tag.BLOCKDATA:
			return (yield from self._read_block_data(depth))
		elif tag == Tag.BLOCKDATALONG:
			return (yield from self._read_long_block_data(depth))
		else:
			# This includes TC_RESET and TC_EXCEPTION, which are not supported.
			raise self._error(ErrorKind.UNEXPECTED_TAG, offset, f"Illegal content element type {_describe_tag(tag)}")
	
	def _read_new_object(self, depth: int) -> _Decoding[JavaObject]:
		"""Read an object.
		
		TC_OBJECT classDesc newHandle classdata[]
		"""
		
		yield from self._expect_tag(Tag.OBJECT, depth)
		class_chain = yield from self._read_class_desc(depth + 1)
		handle = yield from self._new_handle(depth + 1)
		# The object is registered before its data is read,
		# so that the data can refer back to it.
		obj = JavaObject(handle, class_chain)
		self.handles.assign(handle, obj)
		yield from self._read_class_data(obj, depth + 1)
		return obj
	
	def _read_new_class(self, depth: int) -> _Decoding[JavaClass]:
		"""Read a class literal.
		
		TC_CLASS classDesc newHandle
		"""
		
		yield from self._expect_tag(Tag.CLASS, depth)
		class_chain = yield from self._read_class_desc(depth + 1)
		handle = yield from self._new_handle(depth + 1)
		clazz = JavaClass(handle, class_chain)
		self.handles.assign(handle, clazz)
		return clazz
	
	def _read_new_enum(self, depth: int) -> _Decoding[JavaEnum]:
		"""Read an enum constant.
		
		TC_ENUM classDesc newHandle enumConstantName
		"""
		
		yield from self._expect_tag(Tag.ENUM, depth)
		class_chain = yield from self._read_class_desc(depth + 1)
		handle = yield from self._new_handle(depth + 1)
		constant_name = yield from self._read_new_string(depth + 1)
		enum = JavaEnum(handle, class_chain, constant_name)
		self.handles.assign(handle, enum)
		return enum
	
	def _read_new_array(self, depth: int) -> _Decoding[JavaArray]:
		"""Read an array.
		
		TC_ARRAY classDesc newHandle (int)size values[size]
		
		The element type is taken from the array class name,
		e. g. ``[I`` for an ``int[]``.
		"""
		
		yield from self._expect_tag(Tag.ARRAY, depth)
		
		offset = self._cursor.position
		class_chain = yield from self._read_class_desc(depth + 1)
		if class_chain is None:
			raise self._error(ErrorKind.INVALID_ARRAY_CLASS_DESC, offset, "Array class descriptor is null")
		elif len(class_chain) != 1:
			raise self._error(ErrorKind.INVALID_ARRAY_CLASS_DESC, offset, f"Array class descriptor is made up of {len(class_chain)} classes instead of one")
		
		(descriptor,) = class_chain
		if not descriptor.name.startswith("["):
			raise self._error(ErrorKind.INVALID_ARRAY_CLASS_DESC, offset, f"Array class name {descriptor.name!r} does not begin with '['")
		elif len(descriptor.name) < 2:
			raise self._error(ErrorKind.INVALID_ARRAY_CLASS_DESC, offset, f"Array class name {descriptor.name!r} has no element type")
		element_type_code = descriptor.name[1]
		
		handle = yield from self._new_handle(depth + 1)
		array = JavaArray(handle, descriptor)
		self.handles.assign(handle, array)
		
		offset = self._cursor.position
		size = self._cursor.read_i32()
		if size < 0:
			raise self._error(ErrorKind.INVALID_LENGTH, offset, f"Array size cannot be negative: {size}")
		yield DecodeEvent(depth + 1, "Array size", str(size))
		
		# Every element takes at least one byte,
		# so a bogus size runs into the end of the data long before it could use much memory.
		yield DecodeEvent(depth + 1, "Values")
		for i in range(size):
			yield DecodeEvent(depth + 2, f"Index {i}:")
			element = yield from self._read_field_value(element_type_code, depth + 3)
			array.elements.append(element)
		
		return array
	
	def _read_class_desc(self, depth: int) -> _Decoding[typing.Optional[ClassChain]]:
		"""Read a class descriptor in a position where it may also be null or a reference.
		
		:return: The chain of the descriptor and all of its superclasses,
			or ``None`` for a null descriptor.
		"""
		
		self._check_depth(depth)
		offset = self._cursor.position
		tag = self._cursor.peek_u8()
		if tag in (Tag.CLASSDESC, Tag.PROXYCLASSDESC):
			descriptor = yield from self._read_new_class_desc(depth)
			return descriptor.chain
		elif tag == Tag.NULL:
			yield from self._expect_tag(Tag.NULL, depth)
			return None
		elif tag == Tag.REFERENCE:
			handle = yield from self._read_reference_handle(depth)
			try:
				return self.registry.resolve_by_handle(handle)
			except KeyError:
				raise self._error(ErrorKind.UNKNOWN_CLASS_DESC_HANDLE, offset, f"Invalid classDesc reference (0x{handle:08x})") from None
		else:
			raise self._error(ErrorKind.UNEXPECTED_TAG, offset, f"Illegal classDesc type {_describe_tag(tag)}")
	
	def _read_new_class_desc(self, depth: int) -> _Decoding[ClassDescriptor]:
		"""Read a literal class descriptor and register its chain."""
		
		offset = self._cursor.position
		tag = self._cursor.peek_u8()
		descriptor: ClassDescriptor
		if tag == Tag.CLASSDESC:
			descriptor = yield from self._read_tc_classdesc(depth)
		elif tag == Tag.PROXYCLASSDESC:
			descriptor = yield from self._read_tc_proxyclassdesc(depth)
		else:
			raise self._error(ErrorKind.UNEXPECTED_TAG, offset, f"Illegal newClassDesc type {_describe_tag(tag)}")
		
		self.handles.assign(descriptor.handle, descriptor)
		self.registry.register(descriptor.chain)
		return descriptor
	
	def _read_tc_classdesc(self, depth: int) -> _Decoding[ClassDescriptor]:
		"""TC_CLASSDESC className serialVersionUID newHandle classDescInfo"""
		
		yield from self._expect_tag(Tag.CLASSDESC, depth)
		
		yield DecodeEvent(depth + 1, "className")
		name = yield from self._read_utf(depth + 2)
		
		serial_version_uid = self._cursor.read_i64()
		yield DecodeEvent(depth + 1, "serialVersionUID", f"0x{serial_version_uid & 0xffffffffffffffff:016x}")
		
		handle = yield from self._new_handle(depth + 1)
		
		# classDescInfo: classDescFlags fields classAnnotation superClassDesc
		flags = yield from self._read_class_desc_flags(depth + 1)
		fields = yield from self._read_fields(depth + 1)
		annotations = yield from self._read_annotation_block("classAnnotations", depth + 1)
		superclass_chain = yield from self._read_super_class_desc(depth + 1)
		
		return ClassDescriptor(
			name,
			handle,
			flags,
			fields,
			serial_version_uid=serial_version_uid,
			superclass_chain=superclass_chain or (),
			annotations=annotations,
		)
	
	def _read_tc_proxyclassdesc(self, depth: int) -> _Decoding[ClassDescriptor]:
		"""TC_PROXYCLASSDESC newHandle proxyClassDescInfo
		
		proxyClassDescInfo: (int)count proxyInterfaceName[count] classAnnotation superClassDesc
		"""
		
		yield from self._expect_tag(Tag.PROXYCLASSDESC, depth)
		handle = yield from self._new_handle(depth + 1)
		
		offset = self._cursor.position
		count = self._cursor.read_i32()
		if count < 0:
			raise self._error(ErrorKind.INVALID_LENGTH, offset, f"Proxy interface count cannot be negative: {count}")
		yield DecodeEvent(depth + 1, "Interface count", str(count))
		
		yield DecodeEvent(depth + 1, "proxyInterfaceNames")
		interface_names = []
		for i in range(count):
			yield DecodeEvent(depth + 2, f"{i}:")
			interface_names.append((yield from self._read_utf(depth + 3)))
		
		annotations = yield from self._read_annotation_block("classAnnotations", depth + 1)
		superclass_chain = yield from self._read_super_class_desc(depth + 1)
		
		return ClassDescriptor.proxy(
			handle,
			interface_names,
			superclass_chain=superclass_chain or (),
			annotations=annotations,
		)
	
	def _read_class_desc_flags(self, depth: int) -> _Decoding[ClassDescFlags]:
		offset = self._cursor.position
		raw_flags = self._cursor.read_u8()
		flags = ClassDescFlags(raw_flags)
		description = flags.describe()
		if description:
			yield DecodeEvent(depth, "classDescFlags", f"0x{raw_flags:02x} - {description}")
		else:
			yield DecodeEvent(depth, "classDescFlags", f"0x{raw_flags:02x}")
		
		problem = check_class_desc_flags(flags)
		if problem is not None:
			raise self._error(ErrorKind.INVALID_CLASS_DESC_FLAGS, offset, f"Illegal classDescFlags 0x{raw_flags:02x}: {problem}")
		
		return flags
	
	def _read_fields(self, depth: int) -> _Decoding[typing.Sequence[FieldSpec]]:
		"""(short)count fieldDesc[count]"""
		
		offset = self._cursor.position
		count = self._cursor.read_i16()
		if count < 0:
			raise self._error(ErrorKind.INVALID_LENGTH, offset, f"Field count cannot be negative: {count}")
		yield DecodeEvent(depth, "fieldCount", str(count))
		
		fields = []
		if count > 0:
			yield DecodeEvent(depth, "Fields")
			for i in range(count):
				yield DecodeEvent(depth + 1, f"{i}:")
				fields.append((yield from self._read_field_desc(depth + 2)))
		return fields
	
	def _read_field_desc(self, depth: int) -> _Decoding[FieldSpec]:
		"""Read a field descriptor.
		
		prim_typecode fieldName
		obj_typecode fieldName className1
		"""
		
		offset = self._cursor.position
		raw_type_code = self._cursor.read_u8()
		type_code = chr(raw_type_code)
		try:
			type_name = TYPE_CODE_NAMES[type_code]
		except KeyError:
			raise self._error(ErrorKind.ILLEGAL_FIELD_TYPE_CODE, offset, f"Illegal field type code ({type_code!r}, 0x{raw_type_code:02x})") from None
		yield DecodeEvent(depth, type_name)
		
		yield DecodeEvent(depth, "fieldName")
		name = yield from self._read_utf(depth + 1)
		
		class_name: typing.Optional[str] = None
		if type_code in OBJECT_TYPE_CODES:
			yield DecodeEvent(depth, "className1")
			class_name = yield from self._read_field_class_name(depth + 1)
		
		return FieldSpec(type_code, name, class_name)
	
	def _read_field_class_name(self, depth: int) -> _Decoding[str]:
		node = yield from self._read_new_string(depth)
		if isinstance(node, Reference):
			if isinstance(node.target, JavaString):
				return node.target.value
			else:
				_log.debug("Field class name refers to non-string handle 0x%08x", node.handle)
				return REFERENCE_CLASS_NAME
		else:
			return node.value
	
	def _read_annotation_block(self, label: str, depth: int) -> _Decoding[typing.List[typing.Optional[Node]]]:
		"""Read content elements up to and including the terminating TC_ENDBLOCKDATA.
		
		This is the format of both class annotations and object annotations.
		"""
		
		yield DecodeEvent(depth, label)
		
		contents = []
		while self._cursor.peek_u8() != Tag.ENDBLOCKDATA:
			contents.append((yield from self._read_content_element(depth + 1)))
		yield from self._expect_tag(Tag.ENDBLOCKDATA, depth + 1)
		
		return contents
	
	def _read_super_class_desc(self, depth: int) -> _Decoding[typing.Optional[ClassChain]]:
		yield DecodeEvent(depth, "superClassDesc")
		return (yield from self._read_class_desc(depth + 1))
	
	def _read_class_data(self, obj: JavaObject, depth: int) -> _Decoding[None]:
		"""Read the class data of an object and add it to the object.
		
		The data of each class in the chain is read separately,
		starting with the most-super class.
		"""
		
		yield DecodeEvent(depth, "classdata")
		
		if obj.class_chain is None:
			yield DecodeEvent(depth + 1, "N/A")
			return
		
		for descriptor in obj.class_chain:
			if descriptor.externalizable:
				raise self._error(ErrorKind.UNSUPPORTED_EXTERNALIZABLE, self._cursor.position, f"Unable to parse externalContents of class {descriptor.name}")
		
		for descriptor in reversed(obj.class_chain):
			yield DecodeEvent(depth + 1, descriptor.name)
			
			values = []
			if descriptor.serializable:
				yield DecodeEvent(depth + 2, "values")
				for field in descriptor.fields:
					yield DecodeEvent(depth + 3, field.name)
					value = yield from self._read_field_value(field.type_code, depth + 4)
					values.append((field, value))
			
			annotations = []
			if descriptor.has_object_annotation:
				annotations = yield from self._read_annotation_block("objectAnnotation", depth + 2)
			
			obj.class_data.append(ClassData(descriptor, values, annotations))
	
	def _read_field_value(self, type_code: str, depth: int) -> _Decoding[FieldValue]:
		"""Read a field value or array element of the given type."""
		
		self._check_depth(depth)
		offset = self._cursor.position
		if type_code == "B":
			byte = self._cursor.read_i8()
			if 0x20 <= byte <= 0x7e:
				yield DecodeEvent(depth, "(byte)", f"{byte} (ASCII: {chr(byte)}) - 0x{byte & 0xff:02x}")
			else:
				yield DecodeEvent(depth, "(byte)", f"{byte} - 0x{byte & 0xff:02x}")
			return PrimitiveValue(type_code, byte)
		elif type_code == "C":
			char = chr(self._cursor.read_u16())
			yield DecodeEvent(depth, "(char)", char)
			return PrimitiveValue(type_code, char)
		elif type_code == "D":
			double = self._cursor.read_f64()
			yield DecodeEvent(depth, "(double)", repr(double))
			return PrimitiveValue(type_code, double)
		elif type_code == "F":
			float_ = self._cursor.read_f32()
			yield DecodeEvent(depth, "(float)", repr(float_))
			return PrimitiveValue(type_code, float_)
		elif type_code == "I":
			int_ = self._cursor.read_i32()
			yield DecodeEvent(depth, "(int)", str(int_))
			return PrimitiveValue(type_code, int_)
		elif type_code == "J":
			long = self._cursor.read_i64()
			yield DecodeEvent(depth, "(long)", str(long))
			return PrimitiveValue(type_code, long)
		elif type_code == "S":
			short = self._cursor.read_i16()
			yield DecodeEvent(depth, "(short)", str(short))
			return PrimitiveValue(type_code, short)
		elif type_code == "Z":
			# A stored zero byte means true.
			# This is the opposite of the Java convention,
			# but it's what this trace format has always shown, so it's kept as is.
			boolean = self._cursor.read_u8() == 0
			yield DecodeEvent(depth, "(boolean)", str(boolean).lower())
			return PrimitiveValue(type_code, boolean)
		elif type_code == "[":
			yield DecodeEvent(depth, "(array)")
			tag = self._cursor.peek_u8()
			if tag == Tag.NULL:
				yield from self._expect_tag(Tag.NULL, depth + 1)
				return None
			elif tag == Tag.ARRAY:
				return (yield from self._read_new_array(depth + 1))
			elif tag == Tag.REFERENCE:
				return (yield from self._read_reference(depth + 1))
			else:
				raise self._error(ErrorKind.UNEXPECTED_ARRAY_FIELD_TAG, offset, f"Unexpected array field value type {_describe_tag(tag)}")
		elif type_code == "L":
			yield DecodeEvent(depth, "(object)")
			tag = self._cursor.peek_u8()
			if tag == Tag.OBJECT:
				return (yield from self._read_new_object(depth + 1))
			elif tag == Tag.REFERENCE:
				return (yield from self._read_reference(depth + 1))
			elif tag == Tag.NULL:
				yield from self._expect_tag(Tag.NULL, depth + 1)
				return None
			elif tag in (Tag.STRING, Tag.LONGSTRING):
				return (yield from self._read_string(depth + 1))
			elif tag == Tag.CLASS:
				return (yield from self._read_new_class(depth + 1))
			elif tag == Tag.ARRAY:
				return (yield from self._read_new_array(depth + 1))
			elif tag == Tag.ENUM:
				return (yield from self._read_new_enum(depth + 1))
			else:
				raise self._error(ErrorKind.UNEXPECTED_OBJECT_FIELD_TAG, offset, f"Unexpected object field value type {_describe_tag(tag)}")
		else:
			raise self._error(ErrorKind.ILLEGAL_FIELD_TYPE_CODE, offset, f"Illegal field type code {type_code!r}")
	
	def _read_reference_handle(self, depth: int) -> _Decoding[int]:
		"""TC_REFERENCE (int)handle"""
		
		yield from self._expect_tag(Tag.REFERENCE, depth)
		handle = self._cursor.read_i32()
		yield DecodeEvent(depth + 1, "Handle", f"0x{handle & 0xffffffff:08x}")
		return handle
	
	def _read_reference(self, depth: int) -> _Decoding[Reference]:
		"""Read a reference and resolve it to the node introduced earlier under the same handle."""
		
		offset = self._cursor.position
		handle = yield from self._read_reference_handle(depth)
		try:
			target = self.handles.lookup(handle)
		except KeyError:
			raise self._error(ErrorKind.UNKNOWN_HANDLE, offset, f"Reference to handle 0x{handle & 0xffffffff:08x}, which has not been assigned") from None
		return Reference(handle, target)
	
	def _read_new_string(self, depth: int) -> _Decoding[typing.Union[JavaString, Reference]]:
		"""Read a string in a position where it may also be a reference."""
		
		offset = self._cursor.position
		tag = self._cursor.peek_u8()
		if tag in (Tag.STRING, Tag.LONGSTRING):
			return (yield from self._read_string(depth))
		elif tag == Tag.REFERENCE:
			return (yield from self._read_reference(depth))
		else:
			raise self._error(ErrorKind.UNEXPECTED_TAG, offset, f"Illegal newString type {_describe_tag(tag)}")
	
	def _read_string(self, depth: int) -> _Decoding[JavaString]:
		"""Read a string.
		
		TC_STRING newHandle utf
		TC_LONGSTRING newHandle long-utf
		"""
		
		long = self._cursor.peek_u8() == Tag.LONGSTRING
		yield from self._expect_tag(Tag.LONGSTRING if long else Tag.STRING, depth)
		handle = yield from self._new_handle(depth + 1)
		if long:
			value = yield from self._read_long_utf(depth + 1)
		else:
			value = yield from self._read_utf(depth + 1)
		string = JavaString(handle, value, long=long)
		self.handles.assign(handle, string)
		return string
	
	def _read_utf(self, depth: int) -> _Decoding[str]:
		"""(unsigned short)length contents"""
		
		length = self._cursor.read_u16()
		yield DecodeEvent(depth, "Length", str(length))
		value = _decode_text(self._cursor.read_bytes(length))
		yield DecodeEvent(depth, "Value", value)
		return value
	
	def _read_long_utf(self, depth: int) -> _Decoding[str]:
		"""(long)length contents"""
		
		offset = self._cursor.position
		length = self._cursor.read_i64()
		if length < 0:
			raise self._error(ErrorKind.INVALID_LENGTH, offset, f"Long string length cannot be negative: {length}")
		yield DecodeEvent(depth, "Length", str(length))
		value = _decode_text(self._cursor.read_bytes(length))
		yield DecodeEvent(depth, "Value", value)
		return value
	
	def _read_block_data(self, depth: int) -> _Decoding[BlockData]:
		"""TC_BLOCKDATA (unsigned byte)size contents"""
		
		yield from self._expect_tag(Tag.BLOCKDATA, depth)
		length = self._cursor.read_u8()
		yield DecodeEvent(depth + 1, "Length", f"{length} - 0x{length:02x}")
		data = self._cursor.read_bytes(length)
		yield DecodeEvent(depth + 1, "Contents", f"0x{data.hex()}")
		return BlockData(data)
	
	def _read_long_block_data(self, depth: int) -> _Decoding[BlockData]:
		"""TC_BLOCKDATALONG (int)size contents"""
		
		yield from self._expect_tag(Tag.BLOCKDATALONG, depth)
		offset = self._cursor.position
		length = self._cursor.read_i32()
		if length < 0:
			raise self._error(ErrorKind.INVALID_LENGTH, offset, f"Block data length cannot be negative: {length}")
		yield DecodeEvent(depth + 1, "Length", str(length))
		data = self._cursor.read_bytes(length)
		yield DecodeEvent(depth + 1, "Contents", f"0x{data.hex()}")
		return BlockData(data)
	
	def _read_all_contents(self) -> typing.Iterator[DecodeEvent]:
		"""Iteratively read all content elements in the stream."""
		
		yield from self._header_events
		
		try:
			while self._cursor.has_remaining():
				node = yield from self._read_content_element(1)
				self.contents.append(node)
		except InvalidSerializationStreamError as e:
			_log.debug("Decoding failed after %d handles: %s", len(self.handles), e)
			raise
		
		_log.debug("Decoded %d content elements, %d handles allocated", len(self.contents), len(self.handles))


class DecodeResult(object):
	"""The outcome of :func:`parse_stream`.
	
	:attr:`events` and :attr:`contents` contain everything that was decoded,
	even if decoding failed partway through.
	:attr:`error` is ``None`` if the whole stream was decoded successfully.
	"""
	
	events: typing.List[DecodeEvent]
	contents: typing.List[typing.Optional[Node]]
	error: typing.Optional[DecodeError]
	
	def __init__(self, events: typing.List[DecodeEvent], contents: typing.List[typing.Optional[Node]], error: typing.Optional[DecodeError]) -> None:
		super().__init__()
		
		self.events = events
		self.contents = contents
		self.error = error
	
	def __repr__(self) -> str:
		return f"<{type(self).__module__}.{type(self).__qualname__}: {len(self.events)} events, {len(self.contents)} content elements, error {self.error!r}>"
	
	@property
	def ok(self) -> bool:
		return self.error is None
	
	def raise_for_error(self) -> None:
		"""Raise the error as an :class:`~serialdump.errors.InvalidSerializationStreamError`, if there is one."""
		
		if self.error is not None:
			raise self.error.to_exception()


def parse_stream(data: bytes, *, max_depth: int = DEFAULT_MAX_DEPTH) -> DecodeResult:
	"""Decode a complete stream and return the result instead of raising on invalid data.
	
	Every session starts from scratch -
	handles and class descriptors are never shared between calls.
	"""
	
	events: typing.List[DecodeEvent] = []
	try:
		reader = SerializationStreamReader(data, max_depth=max_depth)
	except InvalidSerializationStreamError as e:
		return DecodeResult(events, [], DecodeError.from_exception(e))
	
	try:
		for event in reader:
			events.append(event)
	except InvalidSerializationStreamError as e:
		return DecodeResult(events, list(reader.contents), DecodeError.from_exception(e))
	
	return DecodeResult(events, list(reader.contents), None)
