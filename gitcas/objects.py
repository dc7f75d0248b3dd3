# objects.py -- Access to base git objects
# Copyright (C) 2007 James Westby <jw+debian@jameswestby.net>
# Copyright (C) 2008-2013 Jelmer Vernooij <jelmer@jelmer.uk>
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

"""Access to base git objects.

This covers the loose object codec (header framing plus zlib) and the
binary tree format.
"""

__all__ = [
    "OBJECT_FILE_CHUNK_SIZE",
    "FileMode",
    "LooseObjectReader",
    "ObjectID",
    "ObjectKind",
    "RawObjectID",
    "TreeEntry",
    "check_hexsha",
    "hex_to_filename",
    "hex_to_sha",
    "object_header",
    "parse_tree",
    "pretty_format_tree_entry",
    "read_loose_object",
    "serialize_tree",
    "sha_to_hex",
    "sorted_tree_entries",
    "tree_sort_key",
    "valid_hexsha",
    "write_loose_object",
]

import binascii
import os
import stat
import zlib
from collections.abc import Iterable, Iterator
from enum import Enum, IntEnum
from io import BytesIO
from types import TracebackType
from typing import BinaryIO, NamedTuple, NewType

from .errors import InvalidInputError, InvalidObjectIDError, ObjectFormatException

# Hex object id as ASCII bytes, e.g. b"e69de29b..."
ObjectID = NewType("ObjectID", bytes)
# The 20 byte binary digest
RawObjectID = NewType("RawObjectID", bytes)

OBJECT_FILE_CHUNK_SIZE = 64 * 1024

# A header is "<kind> <length>\0"; neither field is anywhere near this long.
_MAX_HEADER_FIELD = 32

_HEXDIGITS = frozenset(b"0123456789abcdef")


def sha_to_hex(sha: RawObjectID | bytes) -> ObjectID:
    """Takes a string and returns the hex of the sha within."""
    hexsha = binascii.hexlify(sha)
    assert len(hexsha) == 40, f"Incorrect length of sha1 string: {hexsha!r}"
    return ObjectID(hexsha)


def hex_to_sha(hex: ObjectID | bytes | str) -> RawObjectID:
    """Takes a hex sha and returns a binary sha."""
    assert len(hex) == 40, f"Incorrect length of hexsha: {hex!r}"
    return RawObjectID(binascii.unhexlify(hex))


def valid_hexsha(hex: bytes | str) -> bool:
    """Check whether a value looks like a lowercase 40 character hex id."""
    if isinstance(hex, str):
        try:
            hex = hex.encode("ascii")
        except UnicodeEncodeError:
            return False
    return len(hex) == 40 and all(c in _HEXDIGITS for c in hex)


def check_hexsha(hex: bytes | str) -> ObjectID:
    """Return ``hex`` as an ObjectID, or raise if it is not a valid id.

    Uppercase hex digits are accepted and folded to lowercase.

    Raises:
      InvalidObjectIDError: if the value is not 40 hex characters
    """
    if isinstance(hex, str):
        normalized = hex.lower()
    else:
        normalized = hex.decode("ascii", "replace").lower()
    if not valid_hexsha(normalized):
        raise InvalidObjectIDError(hex)
    return ObjectID(normalized.encode("ascii"))


def hex_to_filename(path: str | os.PathLike[str], hex: ObjectID | bytes) -> str:
    """Takes a hex sha and returns its filename relative to the given path."""
    # Check from object dir
    hexstr = hex.decode("ascii") if isinstance(hex, bytes) else hex
    return os.path.join(os.fspath(path), hexstr[:2], hexstr[2:])


class ObjectKind(Enum):
    """Kinds of object, with the token that names them in object headers."""

    BLOB = b"blob"
    TREE = b"tree"
    COMMIT = b"commit"
    TAG = b"tag"

    @property
    def type_name(self) -> bytes:
        """The header token for this kind."""
        return self.value

    @classmethod
    def from_token(cls, token: bytes | str) -> "ObjectKind":
        """Look up a kind by its header token.

        Raises:
          ObjectFormatException: if the token names no known kind
        """
        if isinstance(token, str):
            token = token.encode("ascii", "replace")
        try:
            return cls(token)
        except ValueError:
            raise ObjectFormatException(f"unknown object kind {token!r}") from None


class FileMode(IntEnum):
    """Modes that may appear in a tree entry."""

    REGULAR = 0o100644
    EXECUTABLE = 0o100755
    SYMLINK = 0o120000
    DIRECTORY = 0o040000

    @property
    def token(self) -> bytes:
        """The octal token used in tree objects, without leading zeros."""
        return b"%o" % self.value

    @property
    def object_kind(self) -> ObjectKind:
        """Kind of object an entry with this mode points at."""
        if self is FileMode.DIRECTORY:
            return ObjectKind.TREE
        return ObjectKind.BLOB

    @classmethod
    def from_token(cls, token: bytes) -> "FileMode":
        """Look up a mode by its octal token.

        Raises:
          ObjectFormatException: if the token is not one of the recognized modes
        """
        try:
            return _MODE_TOKENS[token]
        except KeyError:
            raise ObjectFormatException(f"unknown tree entry mode {token!r}") from None

    @classmethod
    def from_stat(cls, st_mode: int) -> "FileMode":
        """Pick the tree mode for a filesystem entry.

        Raises:
          ValueError: for file types that cannot be stored in a tree
        """
        if stat.S_ISLNK(st_mode):
            return cls.SYMLINK
        if stat.S_ISDIR(st_mode):
            return cls.DIRECTORY
        if stat.S_ISREG(st_mode):
            if st_mode & stat.S_IXUSR:
                return cls.EXECUTABLE
            return cls.REGULAR
        raise ValueError(f"unsupported file type: {oct(st_mode)}")


_MODE_TOKENS = {mode.token: mode for mode in FileMode}


def object_header(kind: ObjectKind, length: int) -> bytes:
    """Return the canonical header for an object.

    Args:
      kind: Kind of the object
      length: Length of the object content in bytes
    Returns: ``b"<kind> <length>\\0"``
    """
    return kind.type_name + b" " + str(length).encode("ascii") + b"\0"


def write_loose_object(
    outf: BinaryIO,
    kind: ObjectKind,
    inf: BinaryIO,
    length: int,
    compression_level: int = -1,
) -> None:
    """Write an object in loose format, compressing as it goes.

    Exactly ``length`` bytes are read from ``inf`` in fixed-size chunks.

    Args:
      outf: File to write the compressed object to
      kind: Kind of the object
      inf: File to read the content from
      length: Number of content bytes
      compression_level: zlib compression level (-1 for the zlib default)

    Raises:
      InvalidInputError: if ``inf`` holds fewer than ``length`` bytes
    """
    compobj = zlib.compressobj(compression_level)
    outf.write(compobj.compress(object_header(kind, length)))
    remaining = length
    while remaining > 0:
        chunk = inf.read(min(OBJECT_FILE_CHUNK_SIZE, remaining))
        if not chunk:
            raise InvalidInputError(
                f"content ended {remaining} bytes short of its declared length {length}"
            )
        remaining -= len(chunk)
        outf.write(compobj.compress(chunk))
    outf.write(compobj.flush())


class LooseObjectReader:
    """Streaming reader for a loose object.

    The header is parsed on construction; ``kind`` and ``length`` are
    available straight away and the content is decompressed lazily by
    ``read``. Reading past the end of the content raises
    ObjectFormatException if the stream did not hold exactly ``length``
    bytes, so a damaged object never reads as a silently shorter one.
    """

    kind: ObjectKind
    length: int

    def __init__(self, f: BinaryIO, close_file: bool = True) -> None:
        """Initialize a LooseObjectReader.

        Args:
          f: File positioned at the start of the compressed object
          close_file: Whether close() should also close ``f``
        """
        self._f = f
        self._close_file = close_file
        self._decomp = zlib.decompressobj()
        self._buf = bytearray()
        self._consumed = 0
        self._closed = False
        try:
            self.kind, self.length = self._read_header()
        except BaseException:
            self.close()
            raise

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.kind.name} {self.length}>"

    def _fill(self) -> bool:
        """Decompress some more data into the buffer.

        Returns: False once the zlib stream has ended
        """
        while not self._decomp.eof:
            compressed = self._decomp.unconsumed_tail
            if not compressed:
                compressed = self._f.read(OBJECT_FILE_CHUNK_SIZE)
            try:
                if compressed:
                    data = self._decomp.decompress(compressed, OBJECT_FILE_CHUNK_SIZE)
                else:
                    data = self._decomp.flush()
                    if not self._decomp.eof:
                        raise ObjectFormatException("truncated zlib stream")
            except zlib.error as exc:
                raise ObjectFormatException(f"invalid zlib stream: {exc}") from exc
            if data:
                self._buf += data
                return True
        return False

    def _read_field(self, delimiter: bytes, what: str) -> bytes:
        while True:
            i = self._buf.find(delimiter)
            if i != -1:
                field = bytes(self._buf[:i])
                del self._buf[: i + 1]
                return field
            if len(self._buf) > _MAX_HEADER_FIELD:
                raise ObjectFormatException(f"object header {what} is too long")
            if not self._fill():
                raise ObjectFormatException(f"object header ends inside the {what}")

    def _read_header(self) -> tuple[ObjectKind, int]:
        kind = ObjectKind.from_token(self._read_field(b" ", "kind"))
        size = self._read_field(b"\0", "length")
        if not size.isdigit():
            raise ObjectFormatException(f"invalid object length {size!r}")
        if len(size) > 1 and size.startswith(b"0"):
            raise ObjectFormatException("object length is not in canonical format")
        return kind, int(size)

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes of content (all remaining if negative)."""
        if self._closed:
            raise ValueError("I/O operation on closed object reader")
        while (size < 0 or len(self._buf) < size) and self._fill():
            pass
        if size < 0 or size >= len(self._buf):
            data = bytes(self._buf)
            self._buf.clear()
            at_end = size < 0 or size > len(data)
        else:
            data = bytes(self._buf[:size])
            del self._buf[:size]
            at_end = False
        self._consumed += len(data)
        if self._consumed > self.length:
            raise ObjectFormatException(
                f"object content is longer than its declared length {self.length}"
            )
        if at_end and self._consumed != self.length:
            raise ObjectFormatException(
                f"object content ended after {self._consumed} of {self.length} bytes"
            )
        return data

    def readall(self) -> bytes:
        """Read the whole remaining content."""
        return self.read()

    def __iter__(self) -> Iterator[bytes]:
        """Iterate over the remaining content in chunks."""
        while True:
            chunk = self.read(OBJECT_FILE_CHUNK_SIZE)
            if not chunk:
                return
            yield chunk

    def close(self) -> None:
        """Release the underlying file."""
        if self._closed:
            return
        self._closed = True
        if self._close_file:
            self._f.close()

    @property
    def closed(self) -> bool:
        """Return whether the reader is closed."""
        return self._closed

    def __enter__(self) -> "LooseObjectReader":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


def read_loose_object(f: BinaryIO) -> LooseObjectReader:
    """Decode the header of a loose object and return a content reader.

    The reader takes ownership of ``f``.

    Raises:
      ObjectFormatException: if the data is not a valid loose object
    """
    return LooseObjectReader(f)


class TreeEntry(NamedTuple):
    """Named tuple encapsulating a single tree entry."""

    name: bytes
    mode: FileMode
    sha: ObjectID

    def in_path(self, path: bytes) -> "TreeEntry":
        """Return a copy of this entry with the given path prepended."""
        if not isinstance(self.name, bytes):
            raise TypeError(f"Expected bytes for name, got {self.name!r}")
        return TreeEntry(path + b"/" + self.name if path else self.name, self.mode, self.sha)


def tree_sort_key(entry: TreeEntry | tuple[bytes, int]) -> bytes:
    """Sort key for tree entries.

    Names compare as raw bytes, except that a directory compares as if its
    name ended in ``/``. This is the order git itself writes trees in.

    Args:
      entry: TreeEntry, or (name, mode) tuple
    """
    name, mode = entry[0], entry[1]
    if stat.S_ISDIR(mode):
        name += b"/"
    return name


def sorted_tree_entries(entries: Iterable[TreeEntry]) -> list[TreeEntry]:
    """Return entries in the order in which they are serialized."""
    return sorted(entries, key=tree_sort_key)


def serialize_tree(entries: Iterable[TreeEntry]) -> Iterator[bytes]:
    """Serialize tree entries to chunks of the canonical encoding.

    Args:
      entries: Sorted iterable over TreeEntry values
    Returns: Iterator over serialized chunks
    """
    for name, mode, hexsha in entries:
        if not name or b"/" in name or b"\0" in name:
            raise InvalidInputError(f"invalid tree entry name {name!r}")
        yield FileMode(mode).token + b" " + name + b"\0" + hex_to_sha(hexsha)


def _read_until(f: BinaryIO, delimiter: bytes) -> tuple[bytes, bool]:
    # Returns (data, found_delimiter); data excludes the delimiter.
    data = bytearray()
    while True:
        c = f.read(1)
        if not c:
            return bytes(data), False
        if c == delimiter:
            return bytes(data), True
        data += c


def parse_tree(f: BinaryIO | bytes) -> list[TreeEntry]:
    """Parse a serialized tree.

    Args:
      f: File-like object (or bytes) holding the tree content
    Returns: list of TreeEntry in the order they were encoded

    Raises:
      ObjectFormatException: on an unknown mode, an empty name or one
        containing "/", or data that ends in the middle of an entry
    """
    if isinstance(f, (bytes, bytearray, memoryview)):
        f = BytesIO(bytes(f))
    entries = []
    while True:
        mode_text, found = _read_until(f, b" ")
        if not found:
            if mode_text:
                raise ObjectFormatException("tree ends inside an entry mode")
            return entries
        mode = FileMode.from_token(mode_text)
        name, found = _read_until(f, b"\0")
        if not found:
            raise ObjectFormatException("tree ends inside an entry name")
        if not name:
            raise ObjectFormatException("tree entry has an empty name")
        if b"/" in name:
            raise ObjectFormatException(f"tree entry name {name!r} contains a path separator")
        sha = f.read(20)
        if len(sha) != 20:
            raise ObjectFormatException(f"tree entry {name!r} has a truncated sha")
        entries.append(TreeEntry(name, mode, sha_to_hex(sha)))


def pretty_format_tree_entry(
    name: bytes, mode: int, hexsha: bytes, encoding: str = "utf-8"
) -> str:
    """Pretty format tree entry.

    Args:
      name: Name of the directory entry
      mode: Mode of entry
      hexsha: Hexsha of the referenced object
      encoding: Character encoding for the name
    Returns: string describing the tree entry
    """
    kind = "tree" if stat.S_ISDIR(mode) else "blob"
    return "{:06o} {} {}\t{}\n".format(
        mode,
        kind,
        hexsha.decode("ascii"),
        name.decode(encoding, "replace"),
    )
