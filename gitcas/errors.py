# errors.py -- errors for gitcas
# Copyright (C) 2007 James Westby <jw+debian@jameswestby.net>
# Copyright (C) 2009-2012 Jelmer Vernooij <jelmer@jelmer.uk>
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

"""gitcas-related exception classes."""

__all__ = [
    "ChecksumMismatch",
    "ConfigError",
    "FileFormatException",
    "InvalidInputError",
    "InvalidObjectIDError",
    "NotGitRepository",
    "NotTreeError",
    "ObjectFormatException",
    "ObjectNotFound",
    "StoreIOError",
    "WrongObjectException",
]

import binascii
import os


def _display_sha(sha: bytes | str) -> str:
    if isinstance(sha, bytes):
        if len(sha) == 20:
            return binascii.hexlify(sha).decode("ascii")
        return sha.decode("ascii", "replace")
    return sha


class ChecksumMismatch(Exception):
    """A checksum didn't match the expected contents."""

    def __init__(
        self,
        expected: bytes | str,
        got: bytes | str,
        extra: str | None = None,
    ) -> None:
        """Initialize a ChecksumMismatch exception.

        Args:
            expected: The expected object id (raw, hex bytes or hex string).
            got: The id the content actually hashed to.
            extra: Optional additional error information.
        """
        self.expected = _display_sha(expected)
        self.got = _display_sha(got)
        self.extra = extra
        message = f"Checksum mismatch: Expected {self.expected}, got {self.got}"
        if self.extra is not None:
            message += f"; {extra}"
        Exception.__init__(self, message)


class WrongObjectException(Exception):
    """Baseclass for all the _ is not a _ exceptions on objects.

    Do not instantiate directly.

    Subclasses should define a type_name attribute that indicates what
    was expected if they were raised.
    """

    type_name: str

    def __init__(self, sha: bytes) -> None:
        """Initialize a WrongObjectException.

        Args:
            sha: The id of the object that was not of the expected kind.
        """
        self.sha = sha
        Exception.__init__(self, f"{_display_sha(sha)} is not a {self.type_name}")


class NotTreeError(WrongObjectException):
    """Indicates that the sha requested does not point to a tree."""

    type_name = "tree"


class ObjectNotFound(Exception):
    """Indicates that a requested object is not in the object store."""

    def __init__(self, sha: bytes) -> None:
        """Initialize an ObjectNotFound exception.

        Args:
            sha: The id of the missing object.
        """
        self.sha = sha
        Exception.__init__(self, f"{_display_sha(sha)} is not in the object store")


class NotGitRepository(Exception):
    """Indicates that no repository skeleton was found."""


class FileFormatException(Exception):
    """Base class for exceptions relating to reading git file formats."""


class ObjectFormatException(FileFormatException):
    """Indicates an error parsing an object.

    Raised for undecompressable data, unparsable headers, unknown kind or
    mode tokens, truncated tree entries and content shorter or longer than
    its declared length.
    """


class ConfigError(FileFormatException, ValueError):
    """A configuration file could not be parsed or holds an invalid value."""


class InvalidInputError(ValueError):
    """Input was rejected before reaching the object store."""


class InvalidObjectIDError(InvalidInputError):
    """An object id does not have the shape of a hex SHA-1."""

    def __init__(self, sha: bytes | str) -> None:
        """Initialize an InvalidObjectIDError.

        Args:
            sha: The offending object id.
        """
        self.sha = sha
        if isinstance(sha, bytes):
            sha = sha.decode("ascii", "replace")
        super().__init__(f"Not a valid object name {sha}")


class StoreIOError(OSError):
    """A filesystem operation on the object store failed.

    Keeps the errno and the path of the original error so callers can still
    treat it like any other OSError.
    """

    def __init__(
        self,
        action: str,
        path: str | os.PathLike[str],
        cause: OSError,
    ) -> None:
        """Initialize a StoreIOError.

        Args:
            action: What was being attempted, e.g. "create directory".
            path: The path the operation failed on.
            cause: The underlying OSError.
        """
        strerror = cause.strerror or str(cause)
        super().__init__(cause.errno, f"Unable to {action}: {strerror}", os.fspath(path))
        self.action = action
