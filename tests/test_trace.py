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


import contextlib
import io
import pathlib
import sys
import tempfile
import typing
import unittest
import unittest.mock

import serialdump.__main__
import serialdump.stream
import serialdump.trace


STRING_HEX = "aced0005 74 0002 4142"


class TraceTests(unittest.TestCase):
	def test_render_event(self) -> None:
		event = serialdump.stream.DecodeEvent(2, "newHandle", "0x007e0000")
		self.assertEqual(serialdump.trace.render_event(event), "    newHandle - 0x007e0000")
		self.assertEqual(serialdump.trace.render_event(event, "\t"), "\t\tnewHandle - 0x007e0000")
		self.assertEqual(serialdump.trace.render_event(serialdump.stream.DecodeEvent(0, "Contents")), "Contents")
	
	def test_render_events(self) -> None:
		result = serialdump.stream.parse_stream(serialdump.trace.parse_hex_ascii(STRING_HEX))
		self.assertEqual(list(serialdump.trace.render_events(result.events)), [
			"STREAM_MAGIC - 0xaced",
			"STREAM_VERSION - 0x0005",
			"Contents",
			"  TC_STRING - 0x74",
			"    newHandle - 0x007e0000",
			"    Length - 2",
			"    Value - AB",
		])
	
	def test_parse_hex_ascii(self) -> None:
		self.assertEqual(serialdump.trace.parse_hex_ascii("AC ED\n00 05\t70"), b"\xac\xed\x00\x05\x70")
		self.assertEqual(serialdump.trace.parse_hex_ascii("0xaced"), b"\xac\xed")
		self.assertEqual(serialdump.trace.parse_hex_ascii(""), b"")
	
	def test_parse_hex_ascii_invalid(self) -> None:
		for text in ["ace", "zz", "ac-ed"]:
			with self.subTest(text=text):
				with self.assertRaises(ValueError):
					serialdump.trace.parse_hex_ascii(text)


class CommandLineTests(unittest.TestCase):
	def run_main(self, *args: str) -> typing.Tuple[int, str, str]:
		stdout = io.StringIO()
		stderr = io.StringIO()
		with unittest.mock.patch.object(sys, "argv", ["serialdump", *args]):
			with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
				with self.assertRaises(SystemExit) as cm:
					serialdump.__main__.main()
		return cm.exception.code, stdout.getvalue(), stderr.getvalue()
	
	def write_file(self, tempdir: str, data: bytes) -> str:
		path = pathlib.Path(tempdir) / "stream.bin"
		path.write_bytes(data)
		return str(path)
	
	def test_read(self) -> None:
		with tempfile.TemporaryDirectory() as tempdir:
			path = self.write_file(tempdir, STRING_HEX.encode("ascii"))
			code, out, err = self.run_main("read", "--hex", "--indent", "\t", path)
		
		self.assertEqual(code, 0)
		self.assertEqual(out.splitlines()[-1], "\t\tValue - AB")
		self.assertEqual(err, "")
	
	def test_read_error(self) -> None:
		"""The partial trace is printed before the error."""
		
		with tempfile.TemporaryDirectory() as tempdir:
			path = self.write_file(tempdir, b"\xac\xed\x00\x05\x74\x00\x05\x41")
			code, out, err = self.run_main("read", path)
		
		self.assertEqual(code, 1)
		self.assertEqual(out.splitlines()[-1], "    Length - 5")
		self.assertIn("truncated stream at offset 7", err)
	
	def test_decode(self) -> None:
		with tempfile.TemporaryDirectory() as tempdir:
			path = self.write_file(tempdir, b"\xac\xed\x00\x05\x74\x00\x02\x41\x42\x70")
			code, out, err = self.run_main("decode", path)
		
		self.assertEqual(code, 0)
		self.assertEqual(out.splitlines(), ["string 0x007e0000: 'AB'", "null"])
	
	def test_decode_error(self) -> None:
		with tempfile.TemporaryDirectory() as tempdir:
			path = self.write_file(tempdir, b"\x00\x01\x00\x05")
			code, out, err = self.run_main("decode", path)
		
		self.assertEqual(code, 1)
		self.assertEqual(out, "")
		self.assertIn("malformed header", err)
	
	def test_invalid_hex(self) -> None:
		with tempfile.TemporaryDirectory() as tempdir:
			path = self.write_file(tempdir, b"not hex")
			code, out, err = self.run_main("read", "--hex", path)
		
		self.assertEqual(code, 1)
		self.assertIn("Invalid hex input", err)
	
	def test_max_depth_limit(self) -> None:
		"""--max-depth accepts lower limits and rejects limits above the default."""
		
		with tempfile.TemporaryDirectory() as tempdir:
			path = self.write_file(tempdir, b"aced0005 73 72 0001 58 0000000000000000 02 0000 78 70")
			code, out, err = self.run_main("read", "--hex", "--max-depth", "1", path)
			self.assertEqual(code, 1)
			self.assertIn("nesting too deep", err)
			
			for value in [str(serialdump.stream.DEFAULT_MAX_DEPTH + 1), "100000", "0", "deep"]:
				with self.subTest(value=value):
					code, out, err = self.run_main("read", "--hex", "--max-depth", value, path)
					self.assertEqual(code, 2)
					self.assertIn("--max-depth", err)
	
	def test_missing_subcommand(self) -> None:
		code, out, err = self.run_main()
		self.assertEqual(code, 2)


if __name__ == "__main__":
	unittest.main()
