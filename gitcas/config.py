# config.py -- Reading and writing repository configuration files
# Copyright (C) 2011-2013 Jelmer Vernooij <jelmer@jelmer.uk>
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# gitcas is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Reading and writing repository configuration files.

The syntax is git's: ``[section]`` or ``[section "subsection"]`` headers
followed by ``name = value`` lines, with ``#`` and ``;`` comments.
Section and variable names are case-insensitive; subsection names are not.

Only what the object store needs is supported. Include directives and
multi-valued variables are not.
"""

__all__ = [
    "Config",
    "ConfigDict",
    "ConfigFile",
]

import os
from collections.abc import Iterator
from typing import BinaryIO

from .errors import ConfigError
from .file import GitFile

Section = tuple[bytes, ...]
SectionLike = bytes | str | tuple[bytes | str, ...]
NameLike = bytes | str


def _to_bytes(value: bytes | str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


def _section_key(section: SectionLike) -> Section:
    if not isinstance(section, tuple):
        section = (section,)
    parts = tuple(_to_bytes(part) for part in section)
    # Only the section name itself is case-insensitive
    return (parts[0].lower(), *parts[1:])


class Config:
    """A Git configuration."""

    def get(self, section: SectionLike, name: NameLike) -> bytes:
        """Retrieve the contents of a configuration setting.

        Args:
          section: Tuple with section name and optional subsection name
          name: Variable name
        Returns:
          Contents of the setting
        Raises:
          KeyError: if the value is not set
        """
        raise NotImplementedError(self.get)

    def get_boolean(
        self, section: SectionLike, name: NameLike, default: bool | None = None
    ) -> bool | None:
        """Retrieve a configuration setting as boolean.

        Args:
          section: Tuple with section name and optional subsection name
          name: Variable name
          default: Default value if setting is not found

        Returns:
          Contents of the setting
        """
        try:
            value = self.get(section, name)
        except KeyError:
            return default
        if value.lower() in (b"true", b"yes", b"on", b"1"):
            return True
        elif value.lower() in (b"false", b"no", b"off", b"0", b""):
            return False
        raise ConfigError(f"not a valid boolean string: {value!r}")

    def get_int(
        self, section: SectionLike, name: NameLike, default: int | None = None
    ) -> int | None:
        """Retrieve a configuration setting as an integer.

        Raises:
          ConfigError: if the value is set but is not an integer
        """
        try:
            value = self.get(section, name)
        except KeyError:
            return default
        try:
            return int(value.decode("ascii"))
        except ValueError:
            raise ConfigError(f"not a valid integer: {value!r}") from None

    def set(self, section: SectionLike, name: NameLike, value: bytes | str | bool | int) -> None:
        """Set a configuration value.

        Args:
          section: Tuple with section name and optional subsection name
          name: Name of the configuration value
          value: value of the setting
        """
        raise NotImplementedError(self.set)

    def sections(self) -> Iterator[Section]:
        """Iterate over the sections.

        Returns: Iterator over section tuples
        """
        raise NotImplementedError(self.sections)

    def has_section(self, name: SectionLike) -> bool:
        """Check if a specified section exists."""
        return _section_key(name) in self.sections()


class ConfigDict(Config):
    """Git configuration stored in a dictionary."""

    def __init__(self, values: dict[Section, dict[bytes, bytes]] | None = None) -> None:
        """Create a new ConfigDict."""
        self._values: dict[Section, dict[bytes, bytes]] = {}
        # Original spelling of variable names, for writing back out
        self._names: dict[tuple[Section, bytes], bytes] = {}
        for section, settings in (values or {}).items():
            self._values.setdefault(_section_key(section), {})
            for name, value in settings.items():
                self.set(section, name, value)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._values!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, self.__class__) and other._values == self._values

    def get(self, section: SectionLike, name: NameLike) -> bytes:
        return self._values[_section_key(section)][_to_bytes(name).lower()]

    def set(self, section: SectionLike, name: NameLike, value: bytes | str | bool | int) -> None:
        if isinstance(value, bool):
            value = b"true" if value else b"false"
        elif isinstance(value, int):
            value = str(value)
        key = _section_key(section)
        name = _to_bytes(name)
        self._values.setdefault(key, {})[name.lower()] = _to_bytes(value)
        self._names[key, name.lower()] = name

    def items(self, section: SectionLike) -> Iterator[tuple[bytes, bytes]]:
        """Iterate over the (name, value) pairs of a section."""
        key = _section_key(section)
        for lname, value in self._values.get(key, {}).items():
            yield self._names[key, lname], value

    def sections(self) -> Iterator[Section]:
        return iter(self._values)


_ESCAPE_TABLE = {
    ord(b"\\"): ord(b"\\"),
    ord(b'"'): ord(b'"'),
    ord(b"n"): ord(b"\n"),
    ord(b"t"): ord(b"\t"),
    ord(b"b"): ord(b"\b"),
}
_COMMENT_CHARS = (ord(b"#"), ord(b";"))
_WHITESPACE_CHARS = (ord(b"\t"), ord(b" "))


def _parse_string(value: bytes) -> bytes:
    ret = bytearray()
    whitespace = bytearray()
    in_quotes = False
    chars = iter(bytearray(value.strip()))
    for c in chars:
        if c == ord(b"\\"):
            escaped = next(chars, None)
            if escaped not in _ESCAPE_TABLE:
                raise ConfigError(f"invalid escape sequence in {value!r}")
            ret.extend(whitespace)
            whitespace.clear()
            ret.append(_ESCAPE_TABLE[escaped])
        elif c == ord(b'"'):
            in_quotes = not in_quotes
        elif c in _COMMENT_CHARS and not in_quotes:
            # the rest of the line is a comment
            break
        elif c in _WHITESPACE_CHARS and not in_quotes:
            whitespace.append(c)
        else:
            ret.extend(whitespace)
            whitespace.clear()
            ret.append(c)
    if in_quotes:
        raise ConfigError("missing end quote")
    return bytes(ret)


def _escape_value(value: bytes) -> bytes:
    value = value.replace(b"\\", b"\\\\")
    value = value.replace(b"\n", b"\\n")
    value = value.replace(b"\t", b"\\t")
    value = value.replace(b'"', b'\\"')
    return value


def _format_string(value: bytes) -> bytes:
    if value.startswith((b" ", b"\t")) or value.endswith((b" ", b"\t")) or b"#" in value or b";" in value:
        return b'"' + _escape_value(value) + b'"'
    return _escape_value(value)


def _check_variable_name(name: bytes) -> bool:
    return bool(name) and name[:1].isalpha() and all(
        c.isalnum() or c == b"-" for c in (name[i : i + 1] for i in range(len(name)))
    )


def _check_section_name(name: bytes) -> bool:
    return bool(name) and all(
        c.isalnum() or c in (b"-", b".") for c in (name[i : i + 1] for i in range(len(name)))
    )


def _parse_section_header_line(line: bytes) -> tuple[Section, bytes]:
    # Parse section header ("[bla]" or '[bla "sub"]'); returns the rest of the line
    end = line.find(b"]")
    if end == -1:
        raise ConfigError(f"expected trailing ] in {line!r}")
    pts = line[1:end].split(b" ", 1)
    rest = line[end + 1 :]
    if not _check_section_name(pts[0]):
        raise ConfigError(f"invalid section name {pts[0]!r}")
    if len(pts) == 2:
        subsection = pts[1].strip()
        if not (len(subsection) >= 2 and subsection[:1] == b'"' and subsection[-1:] == b'"'):
            raise ConfigError(f"Invalid subsection {pts[1]!r}")
        return (pts[0], subsection[1:-1]), rest
    name, _, subsection = pts[0].partition(b".")
    if subsection:
        return (name, subsection), rest
    return (name,), rest


class ConfigFile(ConfigDict):
    """A Git configuration file, like .git/config or ~/.gitconfig."""

    path: str | None = None

    @classmethod
    def from_file(cls, f: BinaryIO) -> "ConfigFile":
        """Read configuration from a file-like object.

        Raises:
          ConfigError: on a line that cannot be parsed
        """
        ret = cls()
        section: Section | None = None
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line or line[0] in _COMMENT_CHARS:
                continue
            if line[:1] == b"[":
                section, line = _parse_section_header_line(line)
                ret._values.setdefault(_section_key(section), {})
                line = line.strip()
                if not line or line[0] in _COMMENT_CHARS:
                    continue
            if section is None:
                raise ConfigError(f"line {lineno}: setting outside of a section: {line!r}")
            name, sep, value = line.partition(b"=")
            name = name.strip()
            if not sep:
                # A bare variable name means true
                name = _parse_string(name)
                value = b"true"
            else:
                value = _parse_string(value)
            if not _check_variable_name(name):
                raise ConfigError(f"line {lineno}: invalid variable name {name!r}")
            ret.set(section, name, value)
        return ret

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> "ConfigFile":
        """Read configuration from a file on disk."""
        with GitFile(path, "rb") as f:
            ret = cls.from_file(f)
        ret.path = os.fspath(path)
        return ret

    def write_to_path(self, path: str | os.PathLike[str] | None = None) -> None:
        """Write configuration to a file on disk."""
        if path is None:
            if self.path is None:
                raise ValueError("No path specified and no default path available")
            path = self.path
        with GitFile(path, "wb") as f:
            self.write_to_file(f)

    def write_to_file(self, f: BinaryIO) -> None:
        """Write configuration to a file-like object."""
        for section in self.sections():
            if len(section) == 1:
                f.write(b"[" + section[0] + b"]\n")
            else:
                f.write(b"[" + section[0] + b' "' + section[1] + b'"]\n')
            for name, value in self.items(section):
                f.write(b"\t" + name + b" = " + _format_string(value) + b"\n")
