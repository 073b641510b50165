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


import contextvars
import typing


__all__ = [
	"prefix_lines",
	"AsMultilineStringBase",
	"as_multiline_string",
]


def prefix_lines(
	lines: typing.Iterable[str],
	*,
	first: str = "",
	rest: str = "",
) -> typing.Iterable[str]:
	it = iter(lines)
	
	try:
		yield first + next(it)
	except StopIteration:
		if first:
			yield first
	
	if rest:
		for line in it:
			yield rest + line
	else:
		yield from it


# Handles of all objects whose body has already been rendered (or is being rendered) in the current call tree.
_already_rendered_handles: "contextvars.ContextVar[typing.Set[int]]" = contextvars.ContextVar("_already_rendered_handles")
# Handles of the objects whose bodies are currently being rendered, outermost first.
_currently_rendering_handles: "contextvars.ContextVar[typing.Tuple[int, ...]]" = contextvars.ContextVar("_currently_rendering_handles")


class AsMultilineStringBase(object):
	"""Base class for decoded stream nodes that want to implement a custom multiline string representation,
	for use by :func:`as_multiline_string`.
	
	Nodes that were assigned a handle in the stream
	(i. e. that can be the target of a reference)
	return that handle from :meth:`_multiline_handle_`.
	A node with a handle has its body rendered only the first time it is encountered -
	all later occurrences only render the header,
	marked as a backreference or circular reference.
	Object graphs from serialization streams are often cyclic,
	so this is what keeps rendering them finite.
	
	This also provides an implementation of ``__str__`` based on :meth:`~AsMultilineStringBase._as_multiline_string_`.
	"""
	
	def _multiline_handle_(self) -> typing.Optional[int]:
		"""Return the stream handle that identifies this node,
		or ``None`` if the node has no handle and should never be treated as a backreference.
		"""
		
		return None
	
	def _as_multiline_string_header_(self) -> str:
		"""Render the header part of this node's multiline string representation.
		
		The header should be a compact single-line overview description of the node.
		If the body part is non-empty,
		then the header automatically has a colon appended.
		
		Because the header is always fully rendered even for repeated references to the same node,
		it shouldn't recursively render other nodes.
		"""
		
		raise NotImplementedError()
	
	def _as_multiline_string_body_(self) -> typing.Iterable[str]:
		"""Render the body part of this node's multiline string representation.
		
		Each line in the body is automatically indented by one tab
		so that the body appears visually nested under the header.
		
		:return: The string representation as an iterable of lines (line terminators not included).
		"""
		
		raise NotImplementedError()
	
	def _as_multiline_string_(self) -> typing.Iterable[str]:
		"""Convert ``self`` to a multiline string representation.
		
		This method should not be called directly -
		use :func:`as_multiline_string` instead,
		which also takes care of backreference and circular reference detection.
		
		The default implementation is based on :meth:`_as_multiline_string_header_` and :meth:`_as_multiline_string_body_`.
		It first outputs the header on its own line,
		then all of the body lines indented by one tab each.
		
		:return: The string representation as an iterable of lines (line terminators not included).
		"""
		
		first = self._as_multiline_string_header_()
		body_it = iter(self._as_multiline_string_body_())
		# Append the colon to the first line only if at least one more line comes after it.
		try:
			second = next(body_it)
		except StopIteration:
			yield first
		else:
			yield first + ":"
			yield "\t" + second
			for line in body_it:
				yield "\t" + line
	
	def __str__(self) -> str:
		return "\n".join(as_multiline_string(self))


def as_multiline_string(obj: object, *, prefix: str = "") -> typing.Iterable[str]:
	"""Convert a decoded node to a multiline string representation.
	
	If the object has an :meth:`~AsMultilineStringBase._as_multiline_string_` method,
	it is used to create the multiline string representation.
	If the object has a handle that was already rendered earlier in the same call tree,
	only its header is rendered,
	followed by a backreference marker
	(or a circular reference marker, if the earlier rendering is still in progress).
	``None`` (a null reference in the stream) is rendered as ``null``.
	Anything else is converted using default :class:`str` conversion
	and then split into an iterable of lines.
	
	:param obj: The node to represent.
	:param prefix: An optional prefix to add in front of the first line of the string representation.
		Convenience shortcut for :func:`prefix_lines`.
	:return: The string representation as an iterable of lines (line terminators not included).
	"""
	
	token: typing.Optional[contextvars.Token] = None
	token2: typing.Optional[contextvars.Token] = None
	
	try:
		try:
			already_rendered_handles = _already_rendered_handles.get()
		except LookupError:
			already_rendered_handles = set()
			token = _already_rendered_handles.set(already_rendered_handles)
		
		currently_rendering_handles = _currently_rendering_handles.get(())
		
		res: typing.Iterable[str]
		if isinstance(obj, AsMultilineStringBase):
			handle = obj._multiline_handle_()
			if handle is None:
				res = obj._as_multiline_string_()
			elif handle in currently_rendering_handles:
				res = [f"{obj._as_multiline_string_header_()} (circular reference to {handle:#010x})"]
			elif handle in already_rendered_handles:
				res = [f"{obj._as_multiline_string_header_()} (backreference to {handle:#010x})"]
			else:
				already_rendered_handles.add(handle)
				token2 = _currently_rendering_handles.set(currently_rendering_handles + (handle,))
				res = obj._as_multiline_string_()
		elif obj is None:
			res = ["null"]
		else:
			res = str(obj).splitlines()
		
		yield from prefix_lines(res, first=prefix)
	finally:
		if token2 is not None:
			_currently_rendering_handles.reset(token2)
		
		if token is not None:
			_already_rendered_handles.reset(token)
