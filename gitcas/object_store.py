# object_store.py -- Object store for git objects
# Copyright (C) 2008-2013 Jelmer Vernooij <jelmer@jelmer.uk>
#                         and others
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


"""Git object store interfaces and implementation."""

__all__ = [
    "OBJECT_MODE",
    "SPOOL_FILE_MAX_SIZE",
    "DiskObjectStore",
    "iter_tree_contents",
    "read_tree",
]

import os
import sys
from collections.abc import Iterator
from io import BytesIO
from tempfile import SpooledTemporaryFile
from typing import TYPE_CHECKING, BinaryIO

from .errors import (
    ChecksumMismatch,
    ConfigError,
    NotTreeError,
    ObjectNotFound,
    StoreIOError,
)
from .file import GitFile, ensure_dir_exists
from .hash import hash_object_stream
from .log_utils import getLogger
from .objects import (
    OBJECT_FILE_CHUNK_SIZE,
    FileMode,
    LooseObjectReader,
    ObjectID,
    ObjectKind,
    TreeEntry,
    check_hexsha,
    hex_to_filename,
    parse_tree,
    read_loose_object,
    valid_hexsha,
    write_loose_object,
)

if TYPE_CHECKING:
    from .config import Config

logger = getLogger(__name__)

# Loose objects are never modified once written.
OBJECT_MODE = 0o444 if sys.platform != "win32" else 0o644

SPOOL_FILE_MAX_SIZE = 16 * 1024 * 1024


def _spool(f: BinaryIO) -> tuple[BinaryIO, int]:
    """Copy a non-seekable stream to a temporary file that can be re-read."""
    spooled = SpooledTemporaryFile(max_size=SPOOL_FILE_MAX_SIZE)
    length = 0
    while True:
        chunk = f.read(OBJECT_FILE_CHUNK_SIZE)
        if not chunk:
            break
        spooled.write(chunk)
        length += len(chunk)
    spooled.seek(0)
    return spooled, length  # type: ignore[return-value]


class DiskObjectStore:
    """Git-style loose object store that exists on disk.

    Objects live at ``<path>/<first two hex digits>/<remaining 38>``.
    """

    path: str

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        loose_compression_level: int = -1,
        fsync_object_files: bool = False,
        file_mode: int | None = None,
        dir_mode: int | None = None,
    ) -> None:
        """Open an object store.

        Args:
          path: Path of the object store (the ``objects`` directory).
          loose_compression_level: zlib compression level for loose objects
          fsync_object_files: whether to fsync object files for durability
          file_mode: Permission bits for new object files (default read-only)
          dir_mode: Permission bits for new fan-out directories
        """
        self.path = os.fspath(path)
        self.loose_compression_level = loose_compression_level
        self.fsync_object_files = fsync_object_files
        self.file_mode = file_mode
        self.dir_mode = dir_mode

    def __repr__(self) -> str:
        """Return string representation of DiskObjectStore.

        Returns:
          String representation including the store path
        """
        return f"<{self.__class__.__name__}({self.path!r})>"

    @classmethod
    def from_config(
        cls,
        path: str | os.PathLike[str],
        config: "Config",
        *,
        file_mode: int | None = None,
        dir_mode: int | None = None,
    ) -> "DiskObjectStore":
        """Create a DiskObjectStore from a configuration object.

        Reads ``core.compression``, ``core.looseCompression`` (which takes
        precedence) and ``core.fsyncObjectFiles``.

        Args:
          path: Path to the object store directory
          config: Configuration object to read settings from
          file_mode: Optional permission bits for new object files
          dir_mode: Optional permission bits for new fan-out directories

        Returns:
          New DiskObjectStore instance configured according to config

        Raises:
          ConfigError: if a setting is malformed or the compression level
            is outside -1..9
        """
        default_compression_level = config.get_int((b"core",), b"compression", -1)
        loose_compression_level = config.get_int(
            (b"core",), b"looseCompression", default_compression_level
        )
        if not -1 <= loose_compression_level <= 9:  # type: ignore[operator]
            raise ConfigError(
                f"compression level must be between -1 and 9, not {loose_compression_level}"
            )
        fsync_object_files = config.get_boolean((b"core",), b"fsyncObjectFiles", False)
        return cls(
            path,
            loose_compression_level=loose_compression_level,  # type: ignore[arg-type]
            fsync_object_files=bool(fsync_object_files),
            file_mode=file_mode,
            dir_mode=dir_mode,
        )

    def _get_shafile_path(self, sha: ObjectID | bytes | str) -> str:
        return hex_to_filename(self.path, check_hexsha(sha))

    def contains_loose(self, sha: ObjectID | bytes | str) -> bool:
        """Check if a particular object is present by SHA1 and is loose."""
        return os.path.exists(self._get_shafile_path(sha))

    def __contains__(self, sha: ObjectID | bytes | str) -> bool:
        """Check if a particular object is present by SHA1."""
        return self.contains_loose(sha)

    def __iter__(self) -> Iterator[ObjectID]:
        """Iterate over the SHAs that are present in this store."""
        try:
            bases = sorted(os.listdir(self.path))
        except FileNotFoundError:
            return
        for base in bases:
            if len(base) != 2 or not os.path.isdir(os.path.join(self.path, base)):
                continue
            for rest in sorted(os.listdir(os.path.join(self.path, base))):
                sha = os.fsencode(base + rest)
                if valid_hexsha(sha):
                    yield ObjectID(sha)

    def add_object(
        self, kind: ObjectKind, f: BinaryIO, length: int | None = None
    ) -> ObjectID:
        """Add a single object to this object store.

        The content is read twice, once to hash and once to write, so ``f``
        is rewound between the passes; streams that cannot seek are spooled
        to a temporary file first. Writing an object that is already present
        is a no-op.

        Args:
          kind: Kind of the object
          f: File to read the content from, positioned at its start
          length: Number of content bytes; if None, everything up to EOF
        Returns: The object id

        Raises:
          StoreIOError: if the object could not be written
          InvalidInputError: if ``f`` holds fewer than ``length`` bytes
        """
        if not f.seekable():
            f, spooled_length = _spool(f)
            with f:
                return self.add_object(
                    kind, f, spooled_length if length is None else length
                )
        start = f.tell()
        if length is None:
            length = f.seek(0, os.SEEK_END) - start
            f.seek(start)
        sha = hash_object_stream(kind, f, length)
        path = self._get_shafile_path(sha)
        if os.path.exists(path):
            logger.debug("object %s already present", sha.decode("ascii"))
            return sha
        f.seek(start)
        self._write_loose(path, kind, f, length)
        logger.debug(
            "wrote %s object %s (%d bytes)", kind.type_name.decode(), sha.decode("ascii"), length
        )
        return sha

    def _write_loose(self, path: str, kind: ObjectKind, f: BinaryIO, length: int) -> None:
        dir = os.path.dirname(path)
        try:
            ensure_dir_exists(dir, self.dir_mode)
        except OSError as exc:
            raise StoreIOError("create object directory", dir, exc) from exc
        mask = self.file_mode if self.file_mode is not None else OBJECT_MODE
        try:
            with GitFile(path, "wb", mask=mask, fsync=self.fsync_object_files) as out:
                write_loose_object(out, kind, f, length, self.loose_compression_level)
                if os.path.exists(path):
                    # Another writer got there first; the bytes are identical.
                    out.abort()
        except OSError as exc:
            raise StoreIOError("write object", path, exc) from exc

    def add_bytes(self, kind: ObjectKind, data: bytes) -> ObjectID:
        """Add an object whose content is already in memory."""
        return self.add_object(kind, BytesIO(data), len(data))

    def get(self, sha: ObjectID | bytes | str) -> LooseObjectReader:
        """Open an object for reading.

        The returned reader holds the object file open; use it as a context
        manager or close it.

        Raises:
          ObjectNotFound: if there is no such object
          ObjectFormatException: if the object header cannot be decoded
        """
        sha = check_hexsha(sha)
        path = self._get_shafile_path(sha)
        try:
            f = GitFile(path, "rb")
        except FileNotFoundError:
            raise ObjectNotFound(sha) from None
        except OSError as exc:
            raise StoreIOError("read object", path, exc) from exc
        return read_loose_object(f)

    def get_raw(self, sha: ObjectID | bytes | str) -> tuple[ObjectKind, bytes]:
        """Obtain the kind and full content of an object.

        Args:
          sha: id of the object
        Returns: tuple with object kind and object contents.
        """
        with self.get(sha) as reader:
            return reader.kind, reader.read()

    def verify(self, sha: ObjectID | bytes | str) -> None:
        """Check that an object's content hashes to its name.

        Raises:
          ChecksumMismatch: if the content hashes to a different id
          ObjectFormatException: if the object cannot be decoded
        """
        sha = check_hexsha(sha)
        with self.get(sha) as reader:
            actual = hash_object_stream(reader.kind, reader, reader.length)
            # Reading past the declared length confirms nothing trails it.
            reader.read()
        if actual != sha:
            raise ChecksumMismatch(sha, actual)


def read_tree(store: DiskObjectStore, sha: ObjectID | bytes | str) -> list[TreeEntry]:
    """Read and parse a tree object.

    Raises:
      NotTreeError: if the object is not a tree
      ObjectNotFound: if there is no such object
      ObjectFormatException: if the tree is corrupt
    """
    with store.get(sha) as reader:
        if reader.kind is not ObjectKind.TREE:
            raise NotTreeError(check_hexsha(sha))
        return parse_tree(reader)


def iter_tree_contents(
    store: DiskObjectStore,
    tree_id: ObjectID | bytes | str,
    include_trees: bool = False,
) -> Iterator[TreeEntry]:
    """Iterate the contents of a tree and all subtrees.

    Iteration is depth-first pre-order, as in e.g. os.walk.

    Args:
      store: Object store to read from
      tree_id: id of the root tree
      include_trees: If True, include tree objects in the iteration.
    Returns: Iterator over TreeEntry namedtuples for all the objects in a
        tree, with names relative to the root.
    """
    todo = [TreeEntry(b"", FileMode.DIRECTORY, check_hexsha(tree_id))]
    while todo:
        entry = todo.pop()
        if entry.mode is FileMode.DIRECTORY:
            if include_trees and entry.name:
                yield entry
            children = [child.in_path(entry.name) for child in read_tree(store, entry.sha)]
            todo.extend(reversed(children))
        else:
            yield entry
