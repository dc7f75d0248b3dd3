# hash.py -- Content identity for git objects
# Copyright (C) 2024 The Dulwich contributors
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

"""Content identity for git objects.

An object's id is the SHA-1 of its canonical header followed by its
content, so the same bytes get the same id whether they come from a file
on disk or from a tree serialized in memory.
"""

__all__ = [
    "OID_LENGTH",
    "HEX_LENGTH",
    "hash_object",
    "hash_object_chunks",
    "hash_object_stream",
]

from collections.abc import Iterable
from hashlib import sha1
from typing import BinaryIO

from .errors import InvalidInputError
from .objects import OBJECT_FILE_CHUNK_SIZE, ObjectID, ObjectKind, object_header

OID_LENGTH = 20
HEX_LENGTH = 40


def hash_object_stream(kind: ObjectKind, f: BinaryIO, length: int) -> ObjectID:
    """Hash exactly ``length`` bytes of content read from ``f``.

    Args:
      kind: Kind of the object
      f: File to read the content from; left positioned after the content
      length: Number of content bytes
    Returns: Hex id of the object

    Raises:
      InvalidInputError: if ``f`` holds fewer than ``length`` bytes
    """
    h = sha1(object_header(kind, length))
    remaining = length
    while remaining > 0:
        chunk = f.read(min(OBJECT_FILE_CHUNK_SIZE, remaining))
        if not chunk:
            raise InvalidInputError(
                f"content ended {remaining} bytes short of its declared length {length}"
            )
        h.update(chunk)
        remaining -= len(chunk)
    return ObjectID(h.hexdigest().encode("ascii"))


def hash_object_chunks(kind: ObjectKind, chunks: Iterable[bytes]) -> ObjectID:
    """Hash content given as a sequence of chunks."""
    chunks = list(chunks)
    h = sha1(object_header(kind, sum(len(chunk) for chunk in chunks)))
    for chunk in chunks:
        h.update(chunk)
    return ObjectID(h.hexdigest().encode("ascii"))


def hash_object(kind: ObjectKind, data: bytes) -> ObjectID:
    """Hash in-memory content.

    Args:
      kind: Kind of the object
      data: The object content
    Returns: Hex id of the object
    """
    return hash_object_chunks(kind, [data])
