# tree.py -- Turn directories on disk into tree objects
# Copyright (C) 2026 The gitcas contributors
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

"""Turn directories on disk into tree objects.

The result only depends on names, contents, symlink targets and the
executable bit, so the same directory yields the same tree id on every run
and every machine, and identical subdirectories share one stored tree.
"""

__all__ = [
    "CONTROLDIR",
    "blob_from_path_and_stat",
    "build_tree",
]

import os
import stat
import sys
from collections.abc import Container, Iterable
from io import BytesIO

from .errors import InvalidInputError
from .log_utils import getLogger
from .object_store import DiskObjectStore
from .objects import (
    FileMode,
    ObjectID,
    ObjectKind,
    TreeEntry,
    serialize_tree,
    sorted_tree_entries,
)

logger = getLogger(__name__)

CONTROLDIR = ".git"


def blob_from_path_and_stat(
    object_store: DiskObjectStore,
    fs_path: bytes,
    st: os.stat_result,
    tree_encoding: str = "utf-8",
) -> ObjectID:
    """Store the contents of a file or the target of a symlink as a blob.

    Args:
      object_store: Object store to add the blob to
      fs_path: Full file system path to the file
      st: A stat object for the path, not following symlinks
      tree_encoding: Encoding for symlink targets on Windows
    Returns: id of the blob
    """
    if stat.S_ISLNK(st.st_mode):
        if sys.platform == "win32":
            # os.readlink on Windows requires a unicode string.
            target = os.readlink(os.fsdecode(fs_path)).encode(tree_encoding)
        else:
            target = os.readlink(fs_path)
        return object_store.add_bytes(ObjectKind.BLOB, target)
    with open(fs_path, "rb") as f:
        return object_store.add_object(ObjectKind.BLOB, f, st.st_size)


def _build_tree(
    object_store: DiskObjectStore, fs_path: bytes, exclude: Container[bytes]
) -> ObjectID:
    entries = []
    with os.scandir(fs_path) as it:
        children = [child for child in it if child.name not in exclude]
    for child in children:
        st = child.stat(follow_symlinks=False)
        try:
            mode = FileMode.from_stat(st.st_mode)
        except ValueError:
            logger.warning("skipping %s: not a file, directory or symlink", os.fsdecode(child.path))
            continue
        if mode is FileMode.DIRECTORY:
            sha = _build_tree(object_store, child.path, exclude)
        else:
            sha = blob_from_path_and_stat(object_store, child.path, st)
        entries.append(TreeEntry(child.name, mode, sha))

    data = b"".join(serialize_tree(sorted_tree_entries(entries)))
    sha = object_store.add_object(ObjectKind.TREE, BytesIO(data), len(data))
    logger.debug("tree %s: %d entries", os.fsdecode(fs_path), len(entries))
    return sha


def build_tree(
    object_store: DiskObjectStore,
    path: str | bytes | os.PathLike[str],
    *,
    exclude: Iterable[str | bytes] = (CONTROLDIR,),
) -> ObjectID:
    """Store a directory and everything below it, returning the tree id.

    Subdirectories are stored first (post-order). Symbolic links are stored
    as blobs holding the link target and are never followed, so symlinked
    directories cannot cause loops. Other special files (fifos, sockets,
    devices) are skipped.

    Args:
      object_store: Object store to add blobs and trees to
      path: Directory to store
      exclude: Entry names to leave out at every level; by default the
        repository control directory
    Returns: id of the root tree

    Raises:
      InvalidInputError: if ``path`` is not an existing directory
    """
    fs_path = os.fsencode(path)
    if not os.path.isdir(fs_path):
        raise InvalidInputError(f"{os.fsdecode(fs_path)} is not a directory")
    excluded = frozenset(os.fsencode(name) for name in exclude)
    return _build_tree(object_store, fs_path, excluded)
